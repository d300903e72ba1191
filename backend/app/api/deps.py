"""
通用依赖：浏览器驱动、中继队列、会话服务与 Agent 工厂（测试中可用 dependency_overrides 替换）
"""
from typing import Callable

from app.services.browser_agent import BrowserAgent, create_agent
from app.services.browser_driver import BrowserDriver, get_browser_driver
from app.services.browser_tools import BrowserToolset
from app.services.google_session import GoogleSessionService, get_google_session
from app.services.relay_queue import RelayQueue, get_relay_queue

# 指令中出现这些词时先检查登录态，未登录直接提示而不启动 Agent
LOGIN_KEYWORDS = ("calendar", "event")

AgentFactory = Callable[[BrowserDriver, RelayQueue], BrowserAgent]


def requires_login(prompt: str) -> bool:
    text = (prompt or "").lower()
    return any(word in text for word in LOGIN_KEYWORDS)


def get_driver() -> BrowserDriver:
    return get_browser_driver()


def get_relay() -> RelayQueue:
    return get_relay_queue()


def get_session_service() -> GoogleSessionService:
    return get_google_session()


def build_agent(driver: BrowserDriver, relay: RelayQueue) -> BrowserAgent:
    return create_agent(BrowserToolset(driver, relay))


def get_agent_factory() -> AgentFactory:
    return build_agent
