"""
浏览器会话 / Google 登录相关 Schema
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class AuthStatusResponse(BaseModel):
    """登录状态：profile 目录存在即视为已登录"""
    model_config = ConfigDict(populate_by_name=True)

    logged_in: bool = Field(alias="loggedIn")
    current_url: Optional[str] = Field(default=None, alias="currentUrl")
    browser_data_dir: str = Field(alias="browserDataDir")
    browser_open: bool = Field(alias="browserOpen")


class ActionResponse(BaseModel):
    success: bool = True
    message: str


class NavigateRequest(BaseModel):
    url: str = Field(min_length=1)


class NavigateResponse(BaseModel):
    success: bool = True
    url: str
