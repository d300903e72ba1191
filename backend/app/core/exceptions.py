"""
错误分类：工具层失败由 Agent 转为文本观察结果，服务层失败由 HTTP 层转为 4xx/5xx
"""
from typing import Optional


class HelperError(Exception):
    """本服务所有自定义异常的基类"""


class ToolValidationError(HelperError):
    """工具入参不合法，执行前即被拒绝"""

    def __init__(self, tool: str, message: str):
        self.tool = tool
        super().__init__(f"Invalid input for {tool}: {message}")


class ToolExecutionError(HelperError):
    """工具执行失败，message 直接面向用户"""


class AutomationFailure(ToolExecutionError):
    """脚本化 UI 步骤无法完成；抛出前浏览器会话已关闭"""

    def __init__(self, message: str, step: Optional[str] = None, step_index: Optional[int] = None):
        self.step = step
        self.step_index = step_index
        super().__init__(message)


class RelayTimeoutError(ToolExecutionError):
    """中继请求在等待上限内未完成；请求已被丢弃"""


class AuthRequired(ToolExecutionError):
    """未检测到 Google 登录会话"""


class UpstreamServiceError(HelperError):
    """客户端无法访问本地自动化服务"""


class ScreenshotRateLimitError(HelperError):
    """两次截图间隔小于最小间隔，直接拒绝而不排队"""


class AgentExecutionError(HelperError):
    """Agent 构建或规划阶段失败（非工具失败）"""
