"""
中继请求 API：客户端轮询待处理请求，执行后回报完成
"""
import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_relay
from app.schemas.tab_request import CompleteTabRequest, TabRequestItem, TabRequestList
from app.services.relay_queue import RelayQueue

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=TabRequestList)
async def list_tab_requests(relay: RelayQueue = Depends(get_relay)):
    """返回当前所有请求（含已完成但尚未被工具取走的）"""
    return TabRequestList(requests=[TabRequestItem(**r.to_dict()) for r in relay.poll()])


@router.post("/{request_id}/complete")
async def complete_tab_request(
    request_id: str,
    body: CompleteTabRequest,
    relay: RelayQueue = Depends(get_relay),
):
    if relay.get(request_id) is None:
        return JSONResponse(status_code=404, content={"error": "Request not found"})
    if not relay.complete(request_id, result=body.result_payload(), error=body.error):
        return JSONResponse(status_code=409, content={"error": "Request already completed"})
    return {"success": True}
