"""
Agent 调用 API：一句自然语言指令 -> 工具调用 -> 最终回答
"""
import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import AgentFactory, get_agent_factory, get_driver, get_relay, requires_login
from app.schemas.invoke import AgentStepItem, InvokeRequest, InvokeResponse
from app.services.browser_driver import BrowserDriver
from app.services.relay_queue import RelayQueue

router = APIRouter()
logger = logging.getLogger(__name__)

NOT_LOGGED_IN_MESSAGE = "Not logged into Google Calendar. Please log in first."


@router.post("/invoke", response_model=InvokeResponse, response_model_exclude_none=True)
async def invoke(
    body: InvokeRequest,
    driver: BrowserDriver = Depends(get_driver),
    relay: RelayQueue = Depends(get_relay),
    agent_factory: AgentFactory = Depends(get_agent_factory),
):
    """执行一条指令；无论成功失败，结束时都关闭浏览器会话"""
    prompt = (body.prompt or "").strip()
    if not prompt:
        return JSONResponse(status_code=400, content={"error": "Prompt is required"})
    logger.info("收到指令: %s", prompt)

    if requires_login(prompt) and not driver.has_stored_session():
        logger.info("日历类指令但未登录，提示用户先登录")
        return InvokeResponse(success=False, error=NOT_LOGGED_IN_MESSAGE, needs_login=True)

    try:
        agent = agent_factory(driver, relay)
        turn = await agent.run(prompt)
    except Exception as e:
        logger.exception("Agent 执行失败")
        return JSONResponse(status_code=500, content={"error": "Failed to execute agent", "details": str(e)})
    finally:
        await driver.close()

    steps = [AgentStepItem(**step.to_dict()) for step in turn.steps]
    if body.debug:
        for i, item in enumerate(steps, 1):
            logger.info("[debug] 第 %d 步 %s -> %s", i, item.action, item.observation)
    logger.info("Agent 完成 state=%s", turn.state.value)
    return InvokeResponse(
        success=True,
        result=turn.output,
        output=turn.output,
        intermediate_steps=steps,
        state=turn.state.value,
    )
