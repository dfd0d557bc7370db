"""Agent orchestration: a bounded tool-calling conversation.

Each round sends the whole conversation plus the toolkit's tool descriptors.
A reply without tool calls is the answer. Otherwise every requested tool is
executed, its result appended as a "tool" message, and the next round starts.
After MAX_AGENT_LOOPS rounds without an answer the run fails.

The conversation lives only for the duration of one run().
"""
from __future__ import annotations

from typing import Any, Dict, List

from .adapters.base import BaseChatAdapter
from .completion import extract_message, request_cfg
from .errors import EmptyCompletionError, LoopExhaustedError, ToolkitInvalidError
from .prompt_layers import build_agent_messages
from .tools.executor import ToolNotFoundError, execute_tool
from .tools.registry import Toolkit, ToolkitRegistry
from .types import MAX_AGENT_LOOPS, CanonicalRequest
from .logging_util import get_logger, log_step

logger = get_logger(__name__)

class AgentOrchestrator:
    def __init__(self, adapter: BaseChatAdapter, registry: ToolkitRegistry, max_loops: int = MAX_AGENT_LOOPS):
        self.adapter = adapter
        self.registry = registry
        self.max_loops = max_loops

    def run(self, request: CanonicalRequest, api_key: str) -> str:
        toolkit = self.registry.resolve(request.toolkit_name)
        if not len(toolkit):
            raise ToolkitInvalidError(f"Invalid or empty toolkit: {request.toolkit_name}")

        messages = build_agent_messages(request)
        cfg = request_cfg(request.options)
        cfg["tools"] = toolkit.descriptors()
        cfg["tool_choice"] = "auto"

        for round_no in range(1, self.max_loops + 1):
            log_step(logger, f"5.{round_no}", "agent round %d/%d toolkit=%s", round_no, self.max_loops, toolkit.name)
            raw = self.adapter.generate(messages, cfg, api_key)
            msg = extract_message(raw)

            tool_calls = msg.get("tool_calls") or []
            if not tool_calls:
                content = msg.get("content")
                text = content.strip() if isinstance(content, str) else ""
                if not text:
                    raise EmptyCompletionError("No response")
                log_step(logger, f"5.{round_no}", "agent answered after %d round(s)", round_no)
                return text

            messages.append(
                {
                    "role": "assistant",
                    "content": msg.get("content"),
                    "tool_calls": tool_calls,
                }
            )
            log_step(logger, f"5.{round_no}", "running %d tool call(s)", len(tool_calls))
            messages.extend(self._run_tool_calls(toolkit, tool_calls))

        raise LoopExhaustedError("Max loops reached. The agent could not find an answer.")

    @staticmethod
    def _run_tool_calls(toolkit: Toolkit, tool_calls: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        for call in tool_calls:
            fn = call.get("function") or {}
            name = str(fn.get("name") or "")
            try:
                output = execute_tool(toolkit, name, fn.get("arguments"))
            except ToolNotFoundError as e:
                logger.warning("[AGENT] %s", e)
                output = f"Error: {e}"
            logger.debug("[AGENT] tool %s -> %d chars", name, len(output))
            results.append(
                {
                    "role": "tool",
                    "tool_call_id": call.get("id"),
                    "name": name,
                    "content": output,
                }
            )
        return results
