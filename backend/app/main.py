"""
FastAPI主应用入口
"""
import logging
import uuid
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

from app.core.config import settings
from app.api.deps import get_driver, get_relay
from app.api.v1 import api_router
from app.core.logging import setup_logging
from app.core.health import check_browser_profile, check_llm_config, check_playwright
from app.services.browser_driver import BrowserDriver
from app.services.relay_queue import RelayQueue

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时执行
    setup_logging()
    logger.info("浏览器助手服务启动: http://%s:%s（浏览器按需打开）", settings.HOST, settings.PORT)

    yield

    # 关闭时执行：强制关闭浏览器会话
    logger.info("服务关闭，清理浏览器会话")
    await get_driver().close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="自然语言驱动的浏览器助手：打开标签页、创建日历事件、发送邮件、截图",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS配置（浏览器客户端跨域访问）
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """为每个请求生成或透传 X-Request-ID，并写入 request.state"""
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    return response


def _error_response(detail: str, request_id: str | None = None) -> dict:
    body = {"detail": detail}
    if request_id:
        body["request_id"] = request_id
    return body


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """统一 HTTP 异常响应格式"""
    rid = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_response(
            detail=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
            request_id=rid,
        ),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """422 校验错误统一格式"""
    rid = getattr(request.state, "request_id", None)
    errs = exc.errors()
    detail = errs[0].get("msg", "请求参数校验失败") if errs else "请求参数校验失败"
    body = _error_response(detail=detail, request_id=rid)
    body["errors"] = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in errs]
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """未捕获异常统一格式；顺带关闭浏览器，避免留下孤立的有界面窗口"""
    rid = getattr(request.state, "request_id", None)
    logger.exception("未捕获异常 request_id=%s", rid)
    await get_driver().close()
    return JSONResponse(
        status_code=500,
        content=_error_response(detail="服务器内部错误", request_id=rid),
    )


# 注册路由
app.include_router(api_router)


@app.get("/")
async def root():
    """根路径"""
    return {
        "message": settings.PROJECT_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check(
    driver: BrowserDriver = Depends(get_driver),
    relay: RelayQueue = Depends(get_relay),
):
    """健康检查：服务存活即为 healthy，依赖状态仅供参考"""
    profile_ok, profile_msg = check_browser_profile(driver.user_data_dir)
    playwright_ok, playwright_msg = check_playwright()
    llm_ok, llm_msg = check_llm_config()
    return JSONResponse(
        content={
            "status": "healthy",
            "service": "browser-helper",
            "browserInitialized": driver.is_open,
            "pendingRequests": len(relay),
            "dependencies": {
                "browser_profile": {"ok": profile_ok, "message": profile_msg},
                "playwright": {"ok": playwright_ok, "message": playwright_msg},
                "llm": {"ok": llm_ok, "message": llm_msg},
            },
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
    )
