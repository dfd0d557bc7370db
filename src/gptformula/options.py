"""Options resolution.

Merges user overrides onto the defaults in ResolvedOptions.

Rules:
- Every option accepts a camelCase and a snake_case spelling. The camelCase
  key is looked at first; the first spelling holding a valid value wins.
- Numeric values are clamped to their documented range. Anything that is not
  a usable number is ignored (never an error).
- "format" / "response_format" only switches to json for the literal "json".
"""
from __future__ import annotations

import math
from dataclasses import asdict
from typing import Any, Dict, Mapping, Optional, Sequence

from .types import MAX_CACHE_TTL_SECONDS, TOKEN_CEILING, ResolvedOptions
from .logging_util import get_logger

logger = get_logger(__name__)

DEFAULTS = ResolvedOptions()

def _to_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f

def _to_int(v: Any) -> Optional[int]:
    f = _to_float(v)
    if f is None:
        return None
    return int(f)

def _clamp(v, lo, hi):
    return max(lo, min(hi, v))

def _pick(overrides: Mapping[str, Any], keys: Sequence[str], convert) -> Any:
    for key in keys:
        if key not in overrides:
            continue
        value = convert(overrides[key])
        if value is not None:
            return value
        logger.debug("Ignoring invalid option %s=%r", key, overrides[key])
    return None

def _text(v: Any) -> Optional[str]:
    if isinstance(v, str) and v.strip():
        return v.strip()
    return None

def _json_format(v: Any) -> Optional[str]:
    if isinstance(v, str) and v.strip().lower() == "json":
        return "json"
    return None

def resolve_options(overrides: Optional[Mapping[str, Any]] = None) -> ResolvedOptions:
    o = overrides or {}
    values: Dict[str, Any] = asdict(DEFAULTS)

    model = _pick(o, ("model",), _text)
    if model is not None:
        values["model"] = model

    temperature = _pick(o, ("temperature",), _to_float)
    if temperature is not None:
        values["temperature"] = _clamp(temperature, 0.0, 2.0)

    top_p = _pick(o, ("topP", "top_p"), _to_float)
    if top_p is not None:
        values["top_p"] = _clamp(top_p, 0.0, 1.0)

    max_tokens = _pick(o, ("maxTokens", "max_tokens"), _to_int)
    if max_tokens is not None:
        values["max_tokens"] = _clamp(max_tokens, 1, TOKEN_CEILING)

    if _pick(o, ("format", "response_format"), _json_format) == "json":
        values["output_format"] = "json"

    char_limit = _pick(o, ("responseCharLimit", "response_char_limit"), _to_int)
    if char_limit is not None:
        values["response_char_limit"] = max(1, char_limit)

    ttl = _pick(o, ("cacheTtlSeconds", "cache_ttl_seconds"), _to_int)
    if ttl is not None:
        values["cache_ttl_seconds"] = _clamp(ttl, 1, MAX_CACHE_TTL_SECONDS)

    system_prompt = _pick(o, ("systemPrompt", "system_prompt"), _text)
    if system_prompt is not None:
        values["system_prompt"] = system_prompt

    token_limit = _pick(o, ("tokenLimit", "token_limit"), _to_int)
    if token_limit is not None:
        values["token_limit"] = _clamp(token_limit, 1, TOKEN_CEILING)

    frequency_penalty = _pick(o, ("frequencyPenalty", "frequency_penalty"), _to_float)
    if frequency_penalty is not None:
        values["frequency_penalty"] = _clamp(frequency_penalty, -2.0, 2.0)

    presence_penalty = _pick(o, ("presencePenalty", "presence_penalty"), _to_float)
    if presence_penalty is not None:
        values["presence_penalty"] = _clamp(presence_penalty, -2.0, 2.0)

    return ResolvedOptions(**values)
