"""
健康检查：浏览器 profile 目录、Playwright、LLM 配置
"""
import logging
from pathlib import Path
from typing import Optional, Tuple

from app.core.config import settings

logger = logging.getLogger(__name__)


def check_browser_profile(data_dir: Optional[Path] = None) -> Tuple[bool, str]:
    """profile 目录可创建/可写；不存在 Default 子目录说明尚未登录"""
    data_dir = Path(data_dir or settings.BROWSER_DATA_DIR)
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("健康检查 profile 目录失败: %s", e)
        return False, str(e)
    if not (data_dir / "Default").exists():
        return True, "not logged in"
    return True, "ok"


def check_playwright() -> Tuple[bool, str]:
    """检查 Playwright 是否可导入"""
    try:
        import playwright.async_api  # noqa: F401
        return True, "ok"
    except Exception as e:
        logger.warning("健康检查 Playwright 失败: %s", e)
        return False, str(e)


def check_llm_config() -> Tuple[bool, str]:
    """检查 LLM 配置（只检查配置，不发请求）"""
    if not (settings.OPENAI_API_KEY or "").strip():
        return False, "OPENAI_API_KEY 未配置"
    return True, "ok"
