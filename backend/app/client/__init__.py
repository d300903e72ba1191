"""
浏览器助手客户端：轮询服务端中继请求（开标签页、截图）并转发聊天指令
"""
from app.client.chat import format_agent_reply
from app.client.poller import TabRequestPoller
from app.client.service_client import HelperServiceClient

__all__ = ["HelperServiceClient", "TabRequestPoller", "format_agent_reply"]
