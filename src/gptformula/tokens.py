"""Cheap token estimate used for admission control on the direct path.

chars / 4 is close enough for English prose; this is not a tokenizer.
"""
from __future__ import annotations

import math
from typing import Optional

from .types import TOKEN_CEILING, ResolvedOptions

FIXED_OVERHEAD = 10

def estimate_tokens(prompt: str, context: str, system_prompt: str, max_tokens: Optional[int] = None) -> int:
    chars = len((prompt or "") + (context or "") + (system_prompt or ""))
    estimate = math.ceil(chars / 4) + FIXED_OVERHEAD
    if max_tokens:
        estimate += max_tokens
    return estimate

def effective_token_limit(options: ResolvedOptions) -> int:
    return min(options.token_limit, TOKEN_CEILING)
