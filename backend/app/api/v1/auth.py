"""
Google 登录 API：登录、状态、登出
"""
import logging
from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_session_service
from app.schemas.session import ActionResponse, AuthStatusResponse
from app.services.google_session import GoogleSessionService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/google-login", response_model=ActionResponse)
async def google_login(service: GoogleSessionService = Depends(get_session_service)):
    """打开登录页后立即返回，登录完成由后台任务检测"""
    try:
        await service.start_google_login()
    except Exception as e:
        logger.exception("打开 Google 登录页失败")
        await service.driver.close()
        raise HTTPException(status_code=500, detail=str(e))
    return ActionResponse(
        message="Please complete Google login in the browser window. Check status with /auth/status endpoint."
    )


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status(service: GoogleSessionService = Depends(get_session_service)):
    driver = service.driver
    return AuthStatusResponse(
        logged_in=service.is_logged_in(),
        current_url=driver.current_url,
        browser_data_dir=str(driver.user_data_dir),
        browser_open=driver.is_open,
    )


@router.post("/logout", response_model=ActionResponse)
async def logout(service: GoogleSessionService = Depends(get_session_service)):
    try:
        await service.logout()
    except Exception as e:
        logger.exception("登出失败")
        raise HTTPException(status_code=500, detail=str(e))
    return ActionResponse(message="Logged out of Google")
