"""
路由汇总：与浏览器客户端约定的路径直接挂在根路径下
"""
from fastapi import APIRouter
from app.api.v1 import auth, browser, invoke, tab_requests

api_router = APIRouter()

# 注册子路由
api_router.include_router(invoke.router, tags=["Agent"])
api_router.include_router(tab_requests.router, prefix="/tab-requests", tags=["中继请求"])
api_router.include_router(auth.router, prefix="/auth", tags=["Google 登录"])
api_router.include_router(browser.router, prefix="/browser", tags=["浏览器"])
