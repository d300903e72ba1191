"""
应用配置：从环境变量读取配置
"""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """应用配置类"""

    # 项目根目录（backend 的上一级）
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent.parent

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),  # 从项目根目录读取 .env
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # 服务配置
    PROJECT_NAME: str = "Browser Command Helper"
    HOST: str = "127.0.0.1"
    PORT: int = 5185
    CORS_ORIGINS: List[str] = ["*"]  # 扩展/客户端跨域访问

    # AI模型配置
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TEMPERATURE: float = 0.0

    # Agent 配置：工具调用步数上限，防止重复执行已成功的浏览器操作
    AGENT_MAX_ITERATIONS: int = 2

    # 浏览器会话配置（持久化 profile，保留登录 cookie）
    BROWSER_DATA_DIR: Path = PROJECT_ROOT / "browser-data"
    BROWSER_CHANNEL: str = "chrome"  # 为空则使用 Playwright 自带 chromium
    BROWSER_HEADLESS: bool = False  # 有界面模式，用户可看到自动化过程
    BROWSER_USER_AGENT: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    BROWSER_PROBE_TIMEOUT: float = 2.0  # 页面存活探测超时（秒）
    BROWSER_NAV_TIMEOUT_MS: int = 30000
    BROWSER_NETWORK_IDLE_TIMEOUT_MS: int = 1000
    LOGIN_TIMEOUT_SECONDS: float = 300.0

    # 脚本化 UI 操作配置
    SCRIPT_STEP_DELAY: float = 0.5  # 每步之间的固定节奏延迟（秒），不是重试
    SCRIPT_CLICK_TIMEOUT_MS: int = 5000
    CALENDAR_URL: str = "https://calendar.google.com"
    GMAIL_URL: str = "https://mail.google.com/mail/"

    # 中继队列配置
    TAB_REQUEST_WAIT_SECONDS: float = 1.0
    SCREENSHOT_POLL_INTERVAL: float = 0.5
    SCREENSHOT_MAX_ATTEMPTS: int = 10
    RELAY_COMPLETED_TTL_SECONDS: float = 120.0  # 已完成但无人领取的请求保留时长
    RELAY_PENDING_TTL_SECONDS: float = 300.0  # 客户端始终未处理的请求保留时长

    # 客户端（轮询方）配置
    HELPER_SERVICE_URL: str = "http://localhost:5185"
    CLIENT_POLL_INTERVAL: float = 0.5
    CLIENT_HTTP_TIMEOUT: float = 120.0  # /invoke 可能包含较长的浏览器自动化
    SCREENSHOT_MIN_INTERVAL: float = 0.5
    SCREENSHOT_DIR: Path = Path.home() / "Downloads"

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = PROJECT_ROOT / "logs" / "helper.log"

    @property
    def browser_launch_args(self) -> List[str]:
        """启动参数：最大化窗口并去除自动化特征"""
        return [
            "--start-maximized",
            "--disable-blink-features=AutomationControlled",
            "--disable-features=IsolateOrigins,site-per-process",
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-infobars",
            "--window-position=0,0",
            "--ignore-certificate-errors",
            "--ignore-certificate-errors-spki-list",
        ]


# 创建全局配置实例
settings = Settings()
