"""
屏幕截图：截取当前可见屏幕并保存为 PNG，两次截图之间有最小间隔。
依赖 pyautogui，需在带图形界面的环境运行。
"""
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from app.core.config import settings
from app.core.exceptions import ScreenshotRateLimitError

logger = logging.getLogger(__name__)

_AVAILABLE = False
pyautogui = None  # type: ignore
try:
    import pyautogui
    _AVAILABLE = True
except Exception:
    # 无图形环境（如服务器无 DISPLAY）时 pyautogui 或 mouseinfo 会报错（如 KeyError: 'DISPLAY'），视为不可用
    pyautogui = None  # type: ignore


def is_capture_available() -> bool:
    """当前环境是否支持截图（已安装 pyautogui 且通常为有屏环境）。"""
    return _AVAILABLE


def screenshot_filename(now: Optional[datetime] = None) -> str:
    """screenshot-2026-06-10T12-00-00-000Z.png：时间戳中的 ':' 与 '.' 换成 '-'"""
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"
    return f"screenshot-{stamp}.png"


def capture_screen_to(path: Path) -> Path:
    """截取当前屏幕保存到 path"""
    if not _AVAILABLE:
        raise RuntimeError("未安装 pyautogui，无法截图。请安装: pip install pyautogui")
    try:
        img = pyautogui.screenshot()
    except Exception as e:
        logger.exception("截图失败")
        raise RuntimeError(f"Screenshot failed (a graphical session is required): {e}") from e
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(str(path), format="PNG")
    return path


class ScreenCapturer:
    """带频率限制的截图器：间隔内的第二次请求直接拒绝，不排队"""

    def __init__(
        self,
        directory: Optional[Path] = None,
        min_interval: Optional[float] = None,
        grab: Callable[[Path], Path] = capture_screen_to,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.directory = Path(directory or settings.SCREENSHOT_DIR)
        self.min_interval = settings.SCREENSHOT_MIN_INTERVAL if min_interval is None else min_interval
        self._grab = grab
        self._clock = clock
        self._last_capture: Optional[float] = None

    def capture(self) -> str:
        """截图并返回保存的文件名"""
        now = self._clock()
        if self._last_capture is not None and now - self._last_capture < self.min_interval:
            raise ScreenshotRateLimitError(
                f"Screenshots are limited to one every {self.min_interval:g}s, please try again shortly"
            )
        self._last_capture = now
        filename = screenshot_filename()
        self._grab(self.directory / filename)
        logger.info("截图已保存: %s", self.directory / filename)
        return filename
