"""Prompt layer assembly.

Rules:
- Only system/user layers are built here; the agent appends assistant/tool turns.
- Sheet data is merged into the user message under a labelled block.
- The agent always uses its own tool-oriented system prompt.
- JSON output appends a JSON contract line to the system message; the
  endpoint rejects json_object mode when no message mentions JSON.
"""
from __future__ import annotations

from typing import Any, Dict, List

from .types import CanonicalRequest, ResolvedOptions

DATA_LABEL = "### Data:"

JSON_CONTRACT = "Return a valid JSON object only."

AGENT_SYSTEM_PROMPT = (
    "You are an assistant working inside a spreadsheet cell. "
    "Use the provided tools whenever they help you answer accurately. "
    "When you have enough information, reply with the final answer only, "
    "as short as possible and without explaining the tool calls."
)

def build_user_content(prompt: str, context: str) -> str:
    if not context:
        return prompt
    return f"{prompt}\n\n{DATA_LABEL}\n{context}"

def _system_content(base: str, options: ResolvedOptions) -> str:
    if options.output_format != "json":
        return base
    base = (base or "").rstrip()
    return f"{base}\n\n{JSON_CONTRACT}" if base else JSON_CONTRACT

def build_messages(request: CanonicalRequest) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": _system_content(request.options.system_prompt, request.options)},
        {"role": "user", "content": build_user_content(request.prompt, request.context)},
    ]

def build_agent_messages(request: CanonicalRequest) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": _system_content(AGENT_SYSTEM_PROMPT, request.options)},
        {"role": "user", "content": build_user_content(request.prompt, request.context)},
    ]
