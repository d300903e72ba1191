"""
中继请求轮询：固定间隔拉取待处理请求，逐个执行（开标签页 / 截图）后回报完成。
一次拉取到的请求全部处理完才进入下一轮；服务不可达时暂停，恢复健康后继续。
"""
import asyncio
import logging
import webbrowser
from typing import Any, Callable, Dict, Optional, Set, Tuple

from app.client.screen_capture import ScreenCapturer
from app.client.service_client import HelperServiceClient
from app.core.config import settings
from app.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

OPEN_TAB = "open-tab"
SCREENSHOT = "screenshot"


class TabRequestPoller:
    def __init__(
        self,
        client: HelperServiceClient,
        capturer: Optional[ScreenCapturer] = None,
        open_tab: Callable[[str], Any] = webbrowser.open_new_tab,
        interval: Optional[float] = None,
    ):
        self.client = client
        self.capturer = capturer or ScreenCapturer()
        self.open_tab = open_tab
        self.interval = settings.CLIENT_POLL_INTERVAL if interval is None else interval
        self.paused = False
        # 已回报完成的请求 id
        self._handled: Set[str] = set()
        # 已执行但回报失败的结果 (filename, error)，下一轮只重发回报，不再重复执行
        self._unreported: Dict[str, Tuple[Optional[str], Optional[str]]] = {}

    async def poll_once(self) -> int:
        """拉取一轮并处理所有 pending 请求，返回处理数量"""
        requests = await self.client.list_tab_requests()
        handled = 0
        for request in requests:
            request_id = str(request.get("id", ""))
            if request.get("status") != "pending" or not request_id or request_id in self._handled:
                continue
            if request_id in self._unreported:
                await self._report(request_id, *self._unreported[request_id])
            else:
                await self._handle(request_id, request)
            handled += 1
        live_ids = {str(r.get("id", "")) for r in requests}
        self._handled &= live_ids
        self._unreported = {rid: outcome for rid, outcome in self._unreported.items() if rid in live_ids}
        return handled

    async def _handle(self, request_id: str, request: Dict[str, Any]) -> None:
        kind = request.get("kind")
        payload = request.get("payload") or {}
        filename: Optional[str] = None
        error: Optional[str] = None
        if kind == OPEN_TAB:
            url = payload.get("url")
            if not url:
                error = "Missing url"
            else:
                try:
                    await asyncio.to_thread(self.open_tab, url)
                    logger.info("已打开标签页: %s", payload.get("label") or url)
                except Exception as e:
                    logger.warning("打开标签页失败 %s: %s", url, e)
                    error = str(e)
        elif kind == SCREENSHOT:
            try:
                filename = await asyncio.to_thread(self.capturer.capture)
            except Exception as e:
                logger.warning("截图失败: %s", e)
                error = str(e)
        else:
            error = f"Unsupported request kind: {kind}"
        self._unreported[request_id] = (filename, error)
        await self._report(request_id, filename, error)

    async def _report(self, request_id: str, filename: Optional[str], error: Optional[str]) -> None:
        await self.client.complete_tab_request(request_id, filename=filename, error=error)
        self._unreported.pop(request_id, None)
        self._handled.add(request_id)

    async def _wait_until_healthy(self, stop: asyncio.Event) -> None:
        while not stop.is_set():
            if await self.client.is_healthy():
                return
            await asyncio.sleep(self.interval)

    async def run(self, stop: Optional[asyncio.Event] = None) -> None:
        stop = stop or asyncio.Event()
        logger.info("开始轮询 %s（间隔 %.1fs）", self.client.base_url, self.interval)
        while not stop.is_set():
            try:
                await self.poll_once()
            except UpstreamServiceError as e:
                logger.warning("⚠️ 浏览器助手服务不可达，暂停轮询: %s", e)
                self.paused = True
                await self._wait_until_healthy(stop)
                if not stop.is_set():
                    logger.info("服务已恢复，继续轮询")
                self.paused = False
                continue
            await asyncio.sleep(self.interval)
