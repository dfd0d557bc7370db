from __future__ import annotations

import json
from typing import Any, Dict

from pydantic import ValidationError

from ..errors import ToolExecutionError
from .registry import Toolkit


class ToolNotFoundError(ToolExecutionError):
    """The model asked for a tool the toolkit does not declare."""


def parse_arguments(name: str, raw_args: Any) -> Dict[str, Any]:
    """Tool-call arguments arrive as a JSON object encoded in a string."""
    if raw_args is None or raw_args == "":
        return {}
    if isinstance(raw_args, dict):
        return raw_args
    try:
        parsed = json.loads(raw_args)
    except (TypeError, ValueError) as exc:
        raise ToolExecutionError(f"Malformed arguments for tool {name}: {exc}")
    if not isinstance(parsed, dict):
        raise ToolExecutionError(f"Arguments for tool {name} must be a JSON object")
    return parsed


def execute_tool(toolkit: Toolkit, name: str, raw_args: Any) -> str:
    """
    Execute a tool by name with the raw arguments from a tool call.

    - unknown tool -> ToolNotFoundError
    - malformed JSON / schema mismatch / tool raising -> ToolExecutionError
    - otherwise the result coerced to text
    """
    tool = toolkit.get(name)
    if tool is None:
        raise ToolNotFoundError(f"tool not found: {name}")

    args = parse_arguments(name, raw_args)
    try:
        validated = tool.input_model.model_validate(args)
    except ValidationError as exc:
        raise ToolExecutionError(
            f"Invalid arguments for tool {name}: {exc.error_count()} validation error(s)"
        )

    try:
        result = tool.func(validated)
    except ToolExecutionError:
        raise
    except Exception as exc:
        raise ToolExecutionError(f"Tool {name} failed: {exc}")

    if result is None:
        return ""
    if isinstance(result, (dict, list)):
        return json.dumps(result, ensure_ascii=False)
    return str(result)
