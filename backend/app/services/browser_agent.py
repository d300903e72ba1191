"""
浏览器助手 Agent：把用户的一句话交给 LLM 规划，每步至多调用一个工具，直至结束。

状态流转：deciding -> tool-invoked -> (success | deciding)；
达到最大步数进入 max-iterations，规划器异常进入 error。
模型直接作答时：最后一步工具失败记为 error，其余记为 answered；只有工具成功才是 success。
任一步工具返回 success 标记即停止，不再追加步骤，输出强制为该步结果。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Union

from app.core.config import settings
from app.core.exceptions import AgentExecutionError, HelperError
from app.services.browser_tools import BrowserToolset, ToolResult, ToolStatus, looks_successful

logger = logging.getLogger(__name__)

MAX_ITERATIONS_MESSAGE = "Agent stopped due to max iterations."

SYSTEM_PROMPT = """You are a helpful assistant that can interact with web browsers and Google services.

When the user asks to open a Google service, website, or search for something, use the open_new_tab tool. Examples:
- "open google sheets" -> use open_new_tab with service: "sheets"
- "open gmail" -> use open_new_tab with service: "gmail"
- "create new google doc" -> use open_new_tab with service: "new docs"
- "go to youtube" -> use open_new_tab with service: "youtube"
- "google pictures of cats" -> use open_new_tab with search: "pictures of cats"
- "look up how to bake cookies" -> use open_new_tab with search: "how to bake cookies"

If the request contains words like "google", "search", "look up" or "find", or asks about something to search for, use the search parameter of open_new_tab.

When the user asks to send an email, use the send_email tool. Examples:
- "Send an email to example@gmail.com requesting a meeting" -> send_email with recipient_email: "example@gmail.com" and request: "requesting a meeting"
- "Email john@company.com asking for the project update" -> send_email with recipient_email: "john@company.com" and request: "asking for the project update"
The send_email tool writes the subject and body itself and sends the email.

When the user asks to create a calendar event, use create_calendar_event with the title and the date/time exactly as the user said it (e.g. "tomorrow at 2pm").

Always prefer opening a new tab for navigation and search requests. Only use browser automation when you need to interact with page elements or fill forms.

When a tool reports that the task completed successfully, stop and answer. Never repeat an action that already succeeded."""


class AgentState(str, Enum):
    DECIDING = "deciding"
    TOOL_INVOKED = "tool-invoked"
    SUCCESS = "success"
    ANSWERED = "answered"
    MAX_ITERATIONS = "max-iterations"
    ERROR = "error"


@dataclass
class AgentStep:
    tool: str
    tool_input: Dict[str, Any]
    observation: str
    status: Optional[ToolStatus] = None
    call_id: str = ""

    @property
    def succeeded(self) -> bool:
        # 无结构化标记时按文本识别
        if self.status is None:
            return looks_successful(self.observation)
        return self.status is ToolStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": {"tool": self.tool, "toolInput": self.tool_input},
            "observation": self.observation,
            "status": self.status.value if self.status else None,
        }


@dataclass
class AgentTurn:
    input: str
    steps: List[AgentStep] = field(default_factory=list)
    output: str = ""
    state: AgentState = AgentState.DECIDING


@dataclass(frozen=True)
class ToolCall:
    name: str
    arguments: Dict[str, Any]
    call_id: str = ""


@dataclass(frozen=True)
class FinalAnswer:
    text: str


Decision = Union[ToolCall, FinalAnswer]


class Planner(Protocol):
    async def decide(self, utterance: str, steps: List[AgentStep]) -> Decision:
        ...


class LangChainPlanner:
    """ChatOpenAI.bind_tools 规划器：消息历史 = system + 用户输入 + 已执行的 (tool_call, 结果)"""

    def __init__(self, tools: List[Any], system_prompt: str = SYSTEM_PROMPT, llm: Any = None):
        from app.services.langchain_llm import _get_llm

        self.system_prompt = system_prompt
        self._llm = (llm or _get_llm()).bind_tools(tools)

    def _messages(self, utterance: str, steps: List[AgentStep]) -> List[Any]:
        from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

        messages: List[Any] = [SystemMessage(content=self.system_prompt), HumanMessage(content=utterance)]
        for i, step in enumerate(steps):
            call_id = step.call_id or f"call_{i}"
            messages.append(
                AIMessage(content="", tool_calls=[{"id": call_id, "name": step.tool, "args": step.tool_input}])
            )
            messages.append(ToolMessage(content=step.observation, tool_call_id=call_id))
        return messages

    async def decide(self, utterance: str, steps: List[AgentStep]) -> Decision:
        from app.services.langchain_llm import _ai_message_text, _ai_message_tool_calls

        ai_message = await self._llm.ainvoke(self._messages(utterance, steps))
        tool_calls = _ai_message_tool_calls(ai_message)
        if tool_calls:
            if len(tool_calls) > 1:
                logger.info("模型一次返回 %d 个工具调用，只执行第一个", len(tool_calls))
            first = tool_calls[0]
            return ToolCall(first["name"], first["arguments"], first["id"])
        return FinalAnswer(_ai_message_text(ai_message))


def _reads_as_requested(step: AgentStep) -> bool:
    if step.status is None:
        return "Task completed" in step.observation
    return step.status is ToolStatus.PARTIAL


def _answer_state(steps: List[AgentStep]) -> AgentState:
    if steps and steps[-1].status is ToolStatus.FAILURE:
        return AgentState.ERROR
    return AgentState.ANSWERED


def finalize_turn(utterance: str, steps: List[AgentStep], output: str, state: AgentState) -> AgentTurn:
    """
    收尾：第一个成功步骤之后的步骤全部截断，输出改为该步结果；
    达到最大步数且无成功时，若最后一步是「已请求」类部分完成结果则用它作为输出。
    """
    for index, step in enumerate(steps):
        if step.succeeded:
            return AgentTurn(utterance, steps[: index + 1], step.observation, AgentState.SUCCESS)
    if state is AgentState.MAX_ITERATIONS:
        last = steps[-1] if steps else None
        if last is not None and _reads_as_requested(last):
            output = last.observation
        else:
            output = MAX_ITERATIONS_MESSAGE
    return AgentTurn(utterance, list(steps), output, state)


class BrowserAgent:
    def __init__(self, toolset: BrowserToolset, planner: Planner, max_iterations: Optional[int] = None):
        self.toolset = toolset
        self.planner = planner
        self.max_iterations = settings.AGENT_MAX_ITERATIONS if max_iterations is None else max_iterations

    async def _invoke_tool(self, call: ToolCall) -> ToolResult:
        """工具异常不向上抛，转为 "Error: ..." 观察结果，由模型决定下一步"""
        try:
            return await self.toolset.run(call.name, call.arguments)
        except HelperError as e:
            logger.warning("工具 %s 失败: %s", call.name, e)
            return ToolResult.failure(f"Error: {e}")
        except Exception as e:
            logger.exception("工具 %s 执行异常", call.name)
            return ToolResult.failure(f"Error: {e}")

    async def run(self, utterance: str) -> AgentTurn:
        steps: List[AgentStep] = []
        state = AgentState.DECIDING
        logger.info("Agent 开始: %s", utterance)
        while len(steps) < self.max_iterations:
            try:
                decision = await self.planner.decide(utterance, steps)
            except Exception as e:
                logger.exception("Agent 规划失败")
                raise AgentExecutionError(str(e)) from e

            if isinstance(decision, FinalAnswer):
                logger.info("Agent 给出最终回答")
                return finalize_turn(utterance, steps, decision.text, _answer_state(steps))

            state = AgentState.TOOL_INVOKED
            result = await self._invoke_tool(decision)
            step = AgentStep(decision.name, dict(decision.arguments), result.message, result.status, decision.call_id)
            steps.append(step)
            logger.info("Agent 第 %d 步 %s -> [%s]", len(steps), step.tool, result.status.value)

            if step.succeeded:
                return finalize_turn(utterance, steps, step.observation, AgentState.SUCCESS)
            state = AgentState.DECIDING

        logger.info("Agent 达到最大步数 %d", self.max_iterations)
        return finalize_turn(utterance, steps, MAX_ITERATIONS_MESSAGE, AgentState.MAX_ITERATIONS)


def create_agent(toolset: BrowserToolset, planner: Optional[Planner] = None) -> BrowserAgent:
    """按当前配置组装 Agent；未给规划器时使用 LangChain 工具调用规划"""
    if planner is None:
        planner = LangChainPlanner(toolset.as_langchain_tools())
    return BrowserAgent(toolset, planner)
