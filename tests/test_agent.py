import logging

import pytest

from src.gptformula.agent import AgentOrchestrator
from src.gptformula.errors import (
    LoopExhaustedError,
    RemoteFailureError,
    ToolExecutionError,
    ToolkitInvalidError,
)
from src.gptformula.options import resolve_options
from src.gptformula.tools.builtin import default_registry
from src.gptformula.types import CanonicalRequest
from tests.helpers import FakeAdapter, text_reply, tool_reply


def _request(toolkit="math", context="", **overrides):
    return CanonicalRequest(
        prompt="What is 6 times 7?",
        context=context,
        sheet_identity="",
        toolkit_name=toolkit,
        options=resolve_options(overrides),
    )


def test_unknown_toolkit_fails_before_remote_call():
    adapter = FakeAdapter()
    agent = AgentOrchestrator(adapter, default_registry())
    with pytest.raises(ToolkitInvalidError, match="Invalid or empty toolkit: unknown_toolkit"):
        agent.run(_request("unknown_toolkit"), "sk")
    assert adapter.calls == []


def test_tool_round_then_answer():
    adapter = FakeAdapter([
        tool_reply(("calculate", {"expression": "6*7"})),
        text_reply(" 42 "),
    ])
    out = AgentOrchestrator(adapter, default_registry()).run(_request(), "sk")
    assert out == "42"
    assert len(adapter.calls) == 2

    first = adapter.calls[0]
    assert first["cfg"]["tool_choice"] == "auto"
    assert {t["function"]["name"] for t in first["cfg"]["tools"]} == {"calculate", "round_number"}

    history = adapter.calls[1]["messages"]
    assert [m["role"] for m in history] == ["system", "user", "assistant", "tool"]
    assert history[2]["tool_calls"][0]["id"] == "call_0"
    assert history[3] == {"role": "tool", "tool_call_id": "call_0", "name": "calculate", "content": "42"}


def test_unknown_tool_is_reported_back_to_the_model():
    adapter = FakeAdapter([tool_reply(("launch_rocket", {})), text_reply("done")])
    assert AgentOrchestrator(adapter, default_registry()).run(_request(), "sk") == "done"
    tool_msg = adapter.calls[1]["messages"][-1]
    assert tool_msg["content"] == "Error: tool not found: launch_rocket"


def test_multiple_calls_in_one_round():
    adapter = FakeAdapter([
        tool_reply(("calculate", {"expression": "1+1"}), ("round_number", {"value": 2.567, "digits": 1})),
        text_reply("ok"),
    ])
    AgentOrchestrator(adapter, default_registry()).run(_request(), "sk")
    tools = [m for m in adapter.calls[1]["messages"] if m["role"] == "tool"]
    assert [(m["tool_call_id"], m["content"]) for m in tools] == [("call_0", "2"), ("call_1", "2.6")]


def test_malformed_tool_arguments_end_the_run():
    adapter = FakeAdapter([tool_reply(("calculate", '{"expression": '))])
    with pytest.raises(ToolExecutionError, match="Malformed arguments"):
        AgentOrchestrator(adapter, default_registry()).run(_request(), "sk")
    assert len(adapter.calls) == 1


def test_loop_limit():
    adapter = FakeAdapter([tool_reply(("calculate", {"expression": "1"}))], repeat=True)
    with pytest.raises(LoopExhaustedError, match="Max loops reached. The agent could not find an answer."):
        AgentOrchestrator(adapter, default_registry()).run(_request(), "sk")
    assert len(adapter.calls) == 5


def test_remote_failure_is_terminal():
    adapter = FakeAdapter([RemoteFailureError("Rate limit reached", status_code=429)])
    with pytest.raises(RemoteFailureError, match="Rate limit"):
        AgentOrchestrator(adapter, default_registry()).run(_request(), "sk")


def test_json_format_mentions_json_in_agent_system_message():
    adapter = FakeAdapter([text_reply('{"answer": 42}')])
    AgentOrchestrator(adapter, default_registry()).run(_request(format="json"), "sk")
    call = adapter.calls[0]
    assert call["cfg"]["return_json"] is True
    assert "json" in call["messages"][0]["content"].lower()


def test_rounds_are_logged_as_pipeline_substeps(caplog):
    caplog.set_level(logging.INFO, logger="src.gptformula.agent")
    adapter = FakeAdapter([tool_reply(("calculate", {"expression": "6*7"})), text_reply("42")])
    AgentOrchestrator(adapter, default_registry()).run(_request(), "sk")
    assert "[STEP 5.1] agent round 1/5 toolkit=math" in caplog.text
    assert "[STEP 5.1] running 1 tool call(s)" in caplog.text
    assert "[STEP 5.2] agent answered after 2 round(s)" in caplog.text
