"""Single-shot (non-agent) completion.

One request, one answer:
- json format: the answer must itself be valid JSON; it is re-emitted pretty-printed
- text format: the answer is stripped and cut to response_char_limit
"""
from __future__ import annotations

import json
from typing import Any, Dict

from .adapters.base import BaseChatAdapter
from .errors import EmptyCompletionError, FormatViolationError
from .prompt_layers import build_messages
from .types import CanonicalRequest, ResolvedOptions
from .logging_util import get_logger

logger = get_logger(__name__)

TRUNCATION_MARKER = "... [truncated]"

def request_cfg(options: ResolvedOptions) -> Dict[str, Any]:
    return {
        "model": options.model,
        "temperature": options.temperature,
        "top_p": options.top_p,
        "max_tokens": options.max_tokens,
        "frequency_penalty": options.frequency_penalty,
        "presence_penalty": options.presence_penalty,
        "return_json": options.output_format == "json",
    }

def extract_message(raw: Dict[str, Any]) -> Dict[str, Any]:
    choices = raw.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return {}
    msg = choices[0].get("message") or {}
    return msg if isinstance(msg, dict) else {}

def trim_response(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER

class CompletionClient:
    def __init__(self, adapter: BaseChatAdapter):
        self.adapter = adapter

    def complete(self, request: CanonicalRequest, api_key: str) -> str:
        options = request.options
        messages = build_messages(request)
        raw = self.adapter.generate(messages, request_cfg(options), api_key)

        content = extract_message(raw).get("content")
        text = content if isinstance(content, str) else ""
        if not text.strip():
            raise EmptyCompletionError("No response")

        if options.output_format == "json":
            try:
                parsed = json.loads(text)
            except ValueError as e:
                logger.warning("JSON output requested but response did not parse: %s", e)
                raise FormatViolationError("Response is not valid JSON")
            return json.dumps(parsed, ensure_ascii=False, indent=2)

        return trim_response(text.strip(), options.response_char_limit)
