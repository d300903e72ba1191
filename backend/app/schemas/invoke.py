"""
Agent 调用请求/响应 Schema（字段名与浏览器客户端约定一致，使用 camelCase）
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class InvokeRequest(BaseModel):
    """调用请求：一句自然语言指令"""
    prompt: Optional[str] = None
    debug: bool = False


class AgentStepItem(BaseModel):
    """单步执行记录：{action: {tool, toolInput}, observation, status}"""
    action: Dict[str, Any]
    observation: str
    status: Optional[str] = None


class InvokeResponse(BaseModel):
    """调用响应；needsLogin 为真时未执行 Agent"""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    result: Optional[str] = None
    output: Optional[str] = None
    intermediate_steps: List[AgentStepItem] = Field(default_factory=list, alias="intermediateSteps")
    state: Optional[str] = None
    error: Optional[str] = None
    needs_login: Optional[bool] = Field(default=None, alias="needsLogin")
