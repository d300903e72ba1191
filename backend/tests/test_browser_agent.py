"""
Agent loop: one tool call per step, stop on success, max-iteration fallback.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage, ToolMessage

from app.core.exceptions import AgentExecutionError, ToolExecutionError
from app.services.browser_agent import (
    MAX_ITERATIONS_MESSAGE,
    AgentState,
    AgentStep,
    BrowserAgent,
    FinalAnswer,
    LangChainPlanner,
    ToolCall,
    finalize_turn,
)
from app.services.browser_tools import ToolResult, ToolStatus

SENT = 'Successfully sent email to bob@example.com with subject "Hi" regarding: hello'


class ScriptedPlanner:
    def __init__(self, decisions):
        self.decisions = list(decisions)
        self.calls = 0

    async def decide(self, utterance, steps):
        self.calls += 1
        return self.decisions.pop(0)


class FakeToolset:
    def __init__(self, results):
        self.results = results
        self.calls = []

    async def run(self, name, arguments=None):
        self.calls.append(name)
        outcome = self.results[name]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.mark.asyncio
async def test_stops_on_success_even_with_higher_cap():
    planner = ScriptedPlanner([
        ToolCall("wait", {"milliseconds": 10}),
        ToolCall("send_email", {"recipient_email": "bob@example.com", "request": "hello"}),
        ToolCall("send_email", {"recipient_email": "bob@example.com", "request": "hello"}),
    ])
    toolset = FakeToolset({"wait": ToolResult.info("Waited for 10ms"), "send_email": ToolResult.success(SENT)})

    turn = await BrowserAgent(toolset, planner, max_iterations=5).run("email bob")

    assert turn.state is AgentState.SUCCESS
    assert turn.output == SENT
    assert len(turn.steps) == 2
    assert toolset.calls == ["wait", "send_email"]
    assert planner.calls == 2


def test_finalize_truncates_after_first_success_marker():
    steps = [
        AgentStep("wait", {}, "Waited for 10ms"),
        AgentStep("send_email", {}, SENT),
        AgentStep("send_email", {}, SENT + " again"),
    ]
    turn = finalize_turn("email bob", steps, "I sent it twice", AgentState.MAX_ITERATIONS)

    assert turn.output == SENT
    assert [s.observation for s in turn.steps] == ["Waited for 10ms", SENT]
    assert turn.state is AgentState.SUCCESS


@pytest.mark.asyncio
async def test_max_iterations_falls_back_to_partial_observation():
    requested = "Task completed! I have requested to open Gmail in a new tab."
    planner = ScriptedPlanner([ToolCall("open_new_tab", {"service": "gmail"})] * 2)
    toolset = FakeToolset({"open_new_tab": ToolResult.partial(requested)})

    turn = await BrowserAgent(toolset, planner, max_iterations=2).run("open gmail")

    assert turn.state is AgentState.MAX_ITERATIONS
    assert turn.output == requested
    assert len(turn.steps) == 2


@pytest.mark.asyncio
async def test_max_iterations_ignores_trailing_wait():
    planner = ScriptedPlanner([ToolCall("wait", {"milliseconds": 500})] * 2)
    toolset = FakeToolset({"wait": ToolResult.info("Waited for 500ms")})

    turn = await BrowserAgent(toolset, planner, max_iterations=2).run("email bob")

    assert turn.state is AgentState.MAX_ITERATIONS
    assert turn.output == MAX_ITERATIONS_MESSAGE


def test_max_iterations_fallback_on_untagged_requested_text():
    steps = [AgentStep("open_new_tab", {}, "Task completed! I have requested to open Gmail in a new tab.")]
    turn = finalize_turn("open gmail", steps, "", AgentState.MAX_ITERATIONS)
    assert turn.output == steps[0].observation

    steps = [AgentStep("wait", {}, "Waited for 5ms")]
    assert finalize_turn("open gmail", steps, "", AgentState.MAX_ITERATIONS).output == MAX_ITERATIONS_MESSAGE


@pytest.mark.asyncio
async def test_final_answer_after_requested_tab_is_not_success():
    requested = "Task completed! I have requested to open Gmail in a new tab."
    planner = ScriptedPlanner([ToolCall("open_new_tab", {"service": "gmail"}), FinalAnswer("Gmail is opening.")])
    toolset = FakeToolset({"open_new_tab": ToolResult.partial(requested)})

    turn = await BrowserAgent(toolset, planner, max_iterations=3).run("open gmail")

    assert turn.state is AgentState.ANSWERED
    assert turn.output == "Gmail is opening."


@pytest.mark.asyncio
async def test_tool_failure_becomes_error_observation():
    planner = ScriptedPlanner([ToolCall("take_screenshot", {}), FinalAnswer("Sorry, I could not take it.")])
    toolset = FakeToolset({"take_screenshot": ToolExecutionError("Failed to take screenshot: no display")})

    turn = await BrowserAgent(toolset, planner, max_iterations=2).run("screenshot")

    assert turn.steps[0].status is ToolStatus.FAILURE
    assert turn.steps[0].observation == "Error: Failed to take screenshot: no display"
    assert turn.output == "Sorry, I could not take it."
    assert turn.state is AgentState.ERROR


@pytest.mark.asyncio
async def test_max_iterations_without_partial_reports_stop():
    planner = ScriptedPlanner([ToolCall("take_screenshot", {})] * 2)
    toolset = FakeToolset({"take_screenshot": ToolExecutionError("boom")})

    turn = await BrowserAgent(toolset, planner, max_iterations=2).run("screenshot")

    assert turn.state is AgentState.MAX_ITERATIONS
    assert turn.output == MAX_ITERATIONS_MESSAGE


@pytest.mark.asyncio
async def test_final_answer_without_tools():
    turn = await BrowserAgent(FakeToolset({}), ScriptedPlanner([FinalAnswer("Hello!")]), max_iterations=2).run("hi")
    assert turn.output == "Hello!"
    assert turn.steps == []
    assert turn.state is AgentState.ANSWERED


@pytest.mark.asyncio
async def test_planner_failure_raises_agent_error():
    planner = MagicMock()
    planner.decide = AsyncMock(side_effect=RuntimeError("LLM unavailable"))

    with pytest.raises(AgentExecutionError, match="LLM unavailable"):
        await BrowserAgent(FakeToolset({}), planner, max_iterations=2).run("hi")


@pytest.mark.asyncio
async def test_langchain_planner_replays_history_and_picks_first_call():
    bound = MagicMock()
    bound.ainvoke = AsyncMock(return_value=AIMessage(
        content="",
        tool_calls=[
            {"id": "call_b", "name": "send_email", "args": {"recipient_email": "a@b.co", "request": "hi"}},
            {"id": "call_c", "name": "wait", "args": {"milliseconds": 5}},
        ],
    ))
    llm = MagicMock()
    llm.bind_tools.return_value = bound
    planner = LangChainPlanner(tools=[], llm=llm)
    history = [AgentStep("wait", {"milliseconds": 5}, "Waited for 5ms", ToolStatus.INFO, "call_a")]

    decision = await planner.decide("email a@b.co", history)

    assert decision == ToolCall("send_email", {"recipient_email": "a@b.co", "request": "hi"}, "call_b")
    messages = bound.ainvoke.await_args.args[0]
    assert isinstance(messages[-1], ToolMessage)
    assert messages[-1].tool_call_id == "call_a"


@pytest.mark.asyncio
async def test_langchain_planner_final_answer():
    bound = MagicMock()
    bound.ainvoke = AsyncMock(return_value=AIMessage(content="All done."))
    llm = MagicMock()
    llm.bind_tools.return_value = bound

    decision = await LangChainPlanner(tools=[], llm=llm).decide("hi", [])

    assert decision == FinalAnswer("All done.")
