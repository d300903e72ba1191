"""
Google 会话服务：在持久化浏览器 profile 中完成登录 / 登出 / 直接导航
"""
import asyncio
import logging
from typing import List, Optional

from app.core.config import settings
from app.services.browser_driver import BrowserDriver, get_browser_driver

logger = logging.getLogger(__name__)

GOOGLE_ACCOUNTS_URL = "https://accounts.google.com"
GOOGLE_LOGOUT_URL = "https://accounts.google.com/Logout"

LOGIN_CLOSE_DELAY = 5.0
LOGOUT_CLOSE_DELAY = 3.0
NAVIGATE_CLOSE_DELAY = 3.0


class GoogleSessionService:
    """会话服务类"""

    def __init__(self, driver: Optional[BrowserDriver] = None):
        self.driver = driver or get_browser_driver()
        self._monitors: List[asyncio.Task] = []

    def is_logged_in(self) -> bool:
        return self.driver.has_stored_session()

    async def start_google_login(self) -> asyncio.Task:
        """打开 Google 登录页，立即返回；后台任务等待用户在窗口中完成登录"""
        await self.driver.goto(GOOGLE_ACCOUNTS_URL)
        logger.info("已打开 Google 登录页，等待用户完成登录")
        task = asyncio.create_task(self.monitor_login_completion())
        self._monitors.append(task)
        task.add_done_callback(lambda t: self._monitors.remove(t) if t in self._monitors else None)
        return task

    async def monitor_login_completion(self, timeout_seconds: Optional[float] = None) -> bool:
        """
        等待页面离开 accounts 域名；成功后打开日历让会话写入 cookie，5 秒后关闭。
        超时或出错时直接关闭会话。返回是否检测到登录成功。
        """
        try:
            await self.driver.wait_for_login(timeout_seconds)
        except Exception as e:
            logger.info("登录监控结束（未完成登录）: %s", e)
            await self.driver.close()
            return False
        logger.info("✅ Google 登录成功")
        try:
            await self.driver.goto(settings.CALENDAR_URL)
        except Exception as e:
            logger.warning("登录后打开日历失败: %s", e)
            await self.driver.close()
            return True
        self.driver.schedule_close(LOGIN_CLOSE_DELAY)
        return True

    async def logout(self) -> None:
        try:
            await self.driver.goto(GOOGLE_LOGOUT_URL)
        except Exception:
            await self.driver.close()
            raise
        self.driver.schedule_close(LOGOUT_CLOSE_DELAY)

    async def navigate_then_close(self, url: str) -> str:
        """在会话中打开 URL，3 秒后关闭；返回实际打开的 URL"""
        if not url.startswith(("http://", "https://")):
            url = "https://" + url
        try:
            await self.driver.goto(url)
        except Exception:
            await self.driver.close()
            raise
        self.driver.schedule_close(NAVIGATE_CLOSE_DELAY)
        return url


_google_session: Optional[GoogleSessionService] = None


def get_google_session() -> GoogleSessionService:
    global _google_session
    if _google_session is None:
        _google_session = GoogleSessionService()
    return _google_session
