"""
浏览器助手服务的 HTTP 客户端（httpx）；连接失败统一转为 UpstreamServiceError
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


class HelperServiceClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.HELPER_SERVICE_URL).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=settings.CLIENT_HTTP_TIMEOUT if timeout is None else timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HelperServiceClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise UpstreamServiceError(f"Helper service unreachable at {self.base_url}: {e}") from e

    async def _json(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        resp = await self._request(method, path, **kwargs)
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.status_code >= 500 and not data:
            raise UpstreamServiceError(f"Helper service error {resp.status_code} on {path}")
        return data

    async def health(self) -> Dict[str, Any]:
        return await self._json("GET", "/health")

    async def is_healthy(self) -> bool:
        try:
            return (await self.health()).get("status") == "healthy"
        except UpstreamServiceError:
            return False

    async def list_tab_requests(self) -> List[Dict[str, Any]]:
        data = await self._json("GET", "/tab-requests")
        return list(data.get("requests") or [])

    async def complete_tab_request(
        self,
        request_id: str,
        filename: Optional[str] = None,
        error: Optional[str] = None,
    ) -> bool:
        body: Dict[str, Any] = {}
        if filename:
            body.update(success=True, filename=filename)
        if error:
            body["error"] = error
        resp = await self._request("POST", f"/tab-requests/{request_id}/complete", json=body)
        if resp.status_code != 200:
            logger.info("回报请求 %s 完成被拒绝: %s", request_id, resp.status_code)
        return resp.status_code == 200

    async def invoke(self, prompt: str, debug: bool = False) -> Dict[str, Any]:
        """返回服务端 JSON；400/500 的 {error, details} 也原样返回，由调用方展示"""
        return await self._json("POST", "/invoke", json={"prompt": prompt, "debug": debug})

    async def navigate(self, url: str) -> Dict[str, Any]:
        return await self._json("POST", "/browser/navigate", json={"url": url})

    async def auth_status(self) -> Dict[str, Any]:
        return await self._json("GET", "/auth/status")

    async def google_login(self) -> Dict[str, Any]:
        return await self._json("POST", "/auth/google-login")
