"""
直接导航 API：在自动化会话中打开 URL
"""
import logging
from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_session_service
from app.schemas.session import NavigateRequest, NavigateResponse
from app.services.google_session import GoogleSessionService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/navigate", response_model=NavigateResponse)
async def navigate(body: NavigateRequest, service: GoogleSessionService = Depends(get_session_service)):
    try:
        url = await service.navigate_then_close(body.url)
    except Exception as e:
        logger.exception("导航失败: %s", body.url)
        raise HTTPException(status_code=500, detail=str(e))
    return NavigateResponse(url=url)
