"""Shared test helpers: scripted chat responses and a recording fake adapter."""
import copy
import json

from src.gptformula.adapters.base import BaseChatAdapter


def text_reply(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def tool_reply(*calls):
    tool_calls = []
    for i, (name, args) in enumerate(calls):
        raw = args if isinstance(args, str) else json.dumps(args)
        tool_calls.append({"id": f"call_{i}", "type": "function", "function": {"name": name, "arguments": raw}})
    return {"choices": [{"message": {"role": "assistant", "content": None, "tool_calls": tool_calls}}]}


class FakeAdapter(BaseChatAdapter):
    """Replays scripted responses and records every request."""

    def __init__(self, responses=None, repeat=False):
        self.responses = list(responses or [])
        self.repeat = repeat
        self.calls = []

    def generate(self, messages, cfg, api_key):
        self.calls.append({"messages": copy.deepcopy(messages), "cfg": dict(cfg), "api_key": api_key})
        if not self.responses:
            raise AssertionError("unexpected remote call")
        item = self.responses[0] if self.repeat else self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item
