"""
浏览器驱动：持有唯一的 Playwright 持久化会话（profile 目录保存登录 cookie，重启后仍有效）。
有界面模式运行，用户可以看到自动化过程；启动参数与初始化脚本去除自动化特征。
每次顶层调用结束（成功或失败）都会关闭会话，保证下次请求从干净状态开始。
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, List, Optional

from app.core.config import settings
from app.core.exceptions import AutomationFailure
from app.services.ui_scripts import StepContext, UIScript

logger = logging.getLogger(__name__)

# 在每个页面加载前执行：隐藏 webdriver 标记，伪造插件与 chrome.runtime
STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = { runtime: {} };
const originalQuery = window.navigator.permissions && window.navigator.permissions.query;
if (originalQuery) {
  window.navigator.permissions.query = (parameters) => (
    parameters.name === 'notifications'
      ? Promise.resolve({ state: Notification.permission })
      : originalQuery(parameters)
  );
}
"""

# 登录完成判定：离开 accounts 页面并回到任意 google.com 页面
LOGIN_DONE_PREDICATE = """() => {
  const href = window.location.href;
  return href.includes('myaccount.google.com') ||
         href.includes('calendar.google.com') ||
         (href.includes('google.com') && !href.includes('accounts'));
}"""


def _playwright_friendly_error(e: Exception) -> Optional[str]:
    """将 Playwright 常见环境错误转为用户可读提示。"""
    msg = str(e)
    if "Executable doesn't exist" in msg or "playwright install" in msg:
        return "Browser is not installed. Run: playwright install chrome"
    if "XServer" in msg or "headed browser" in msg:
        return "No display available for the headed browser session."
    if "ProcessSingleton" in msg or "SingletonLock" in msg:
        return "The browser profile is already in use by another Chrome window."
    return None


class BrowserDriver:
    """单会话浏览器驱动；ensure_open / close 均幂等"""

    def __init__(
        self,
        user_data_dir: Optional[Path] = None,
        channel: Optional[str] = None,
        headless: Optional[bool] = None,
        probe_timeout: Optional[float] = None,
    ):
        self.user_data_dir = Path(user_data_dir or settings.BROWSER_DATA_DIR)
        self.channel = settings.BROWSER_CHANNEL if channel is None else channel
        self.headless = settings.BROWSER_HEADLESS if headless is None else headless
        self.probe_timeout = settings.BROWSER_PROBE_TIMEOUT if probe_timeout is None else probe_timeout
        self._playwright = None
        self._context = None
        self._page = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._context is not None and self._page is not None

    @property
    def page(self):
        if self._page is None:
            raise AutomationFailure("Browser not initialized")
        return self._page

    @property
    def current_url(self) -> Optional[str]:
        if self._page is None:
            return None
        try:
            return self._page.url
        except Exception:
            return None

    def has_stored_session(self) -> bool:
        """profile 下存在 Default 目录即视为已登录过"""
        return (self.user_data_dir / "Default").exists()

    async def ensure_open(self) -> Any:
        """
        会话不存在或不可用时新建；页面被关闭或探测无响应时新建页面。
        返回可用的 page。
        """
        async with self._lock:
            try:
                if self._page is not None and self._page.is_closed():
                    logger.info("页面已关闭，需要新建页面")
                    self._page = None
                if self._context is not None and self._page is None:
                    try:
                        self._page = await self._context.new_page()
                    except Exception as e:
                        logger.info("浏览器会话已断开，重新初始化: %s", e)
                        await self._teardown()
                if self._context is None:
                    await self._launch()
                if not await self._probe():
                    logger.info("页面无响应，新建页面")
                    self._page = await self._context.new_page()
            except AutomationFailure:
                raise
            except Exception as e:
                logger.warning("确保浏览器可用时出错，重新启动会话: %s", e)
                await self._teardown()
                await self._launch()
            return self._page

    async def _probe(self) -> bool:
        try:
            await asyncio.wait_for(self._page.evaluate("document.readyState"), timeout=self.probe_timeout)
            return True
        except Exception:
            return False

    async def _launch(self) -> None:
        from playwright.async_api import async_playwright

        logger.info("启动浏览器（持久化会话）: %s", self.user_data_dir)
        self.user_data_dir.mkdir(parents=True, exist_ok=True)
        self._playwright = await async_playwright().start()
        try:
            self._context = await self._playwright.chromium.launch_persistent_context(
                str(self.user_data_dir),
                headless=self.headless,
                channel=self.channel or None,
                args=settings.browser_launch_args,
                no_viewport=True,
                ignore_default_args=["--enable-automation"],
                user_agent=settings.BROWSER_USER_AGENT,
            )
            await self._context.add_init_script(STEALTH_INIT_SCRIPT)
            pages = self._context.pages
            self._page = pages[0] if pages else await self._context.new_page()
        except Exception as e:
            await self._teardown()
            friendly = _playwright_friendly_error(e)
            raise AutomationFailure(friendly or f"Failed to launch browser: {e}") from e
        logger.info("浏览器已启动，数据目录: %s", self.user_data_dir)

    async def goto(self, url: str, timeout_ms: Optional[int] = None) -> None:
        if not url.startswith(("http://", "https://")):
            url = "https://" + url
        page = await self.ensure_open()
        await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms or settings.BROWSER_NAV_TIMEOUT_MS)
        logger.info("已打开 %s", url)

    async def run_script(self, script: UIScript) -> None:
        """
        顺序执行脚本步骤，步骤之间固定延迟。
        任一步失败：中止剩余步骤、关闭会话（避免留下填了一半的表单），再抛出 AutomationFailure。
        """
        page = await self.ensure_open()
        ctx = StepContext(
            click_timeout_ms=settings.SCRIPT_CLICK_TIMEOUT_MS,
            nav_timeout_ms=settings.BROWSER_NAV_TIMEOUT_MS,
            network_idle_timeout_ms=settings.BROWSER_NETWORK_IDLE_TIMEOUT_MS,
            key_interval=script.delay,
        )
        logger.info("执行脚本 %s v%s，共 %d 步", script.name, script.version, len(script.steps))
        for index, step in enumerate(script.steps):
            try:
                await step.perform(page, ctx)
            except Exception as e:
                logger.warning("脚本 %s 第 %d 步（%s）失败: %s", script.name, index + 1, step.describe(), e)
                await self.close()
                raise AutomationFailure(
                    f"Step {index + 1} ({step.describe()}) failed: {e}",
                    step=step.describe(),
                    step_index=index,
                ) from e
            if script.delay > 0:
                await asyncio.sleep(script.delay)

    async def wait_for_login(self, timeout_seconds: Optional[float] = None) -> None:
        timeout = settings.LOGIN_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        await self.page.wait_for_function(LOGIN_DONE_PREDICATE, timeout=timeout * 1000)

    async def close(self) -> None:
        """关闭会话；未打开时直接返回，关闭出错只记录日志"""
        async with self._lock:
            await self._teardown()

    async def _teardown(self) -> None:
        context, pw = self._context, self._playwright
        self._context = None
        self._page = None
        self._playwright = None
        if context is None and pw is None:
            return
        logger.info("关闭浏览器...")
        if context is not None:
            try:
                await context.close()
            except Exception as e:
                logger.warning("关闭浏览器会话出错: %s", e)
        if pw is not None:
            try:
                await pw.stop()
            except Exception as e:
                logger.warning("停止 Playwright 出错: %s", e)
        logger.info("浏览器已关闭")

    def schedule_close(self, delay: float) -> "asyncio.Task":
        """延迟关闭会话（登录/导航后给页面留出展示时间）"""
        async def _later() -> None:
            await asyncio.sleep(delay)
            await self.close()

        task = asyncio.create_task(_later())
        _background_tasks.append(task)
        task.add_done_callback(lambda t: _background_tasks.remove(t) if t in _background_tasks else None)
        return task


# 保留后台任务引用，防止被垃圾回收
_background_tasks: List["asyncio.Task"] = []

_browser_driver: Optional[BrowserDriver] = None


def get_browser_driver() -> BrowserDriver:
    """进程内唯一的浏览器驱动（懒加载）"""
    global _browser_driver
    if _browser_driver is None:
        _browser_driver = BrowserDriver()
    return _browser_driver
