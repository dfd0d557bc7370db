"""Shared types and lightweight data containers.

We avoid heavy frameworks here. The goal is:
- keep the request pipeline portable
- keep typing clear but not over-abstract
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Literal, Optional, Protocol, runtime_checkable

OutputFormat = Literal["text", "json"]

# Global ceilings shared by the resolver, estimator and cache gateway.
TOKEN_CEILING = 16000
MAX_CACHE_TTL_SECONDS = 21600
DEFAULT_CACHE_TTL_SECONDS = 3600
CACHE_VALUE_LIMIT = 90000
MAX_AGENT_LOOPS = 5

@runtime_checkable
class RangeSource(Protocol):
    """Anything that behaves like a spreadsheet range."""

    def get_values(self) -> List[List[Any]]:
        ...

@dataclass(frozen=True)
class ResolvedOptions:
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    output_format: OutputFormat = "text"
    response_char_limit: int = 2000
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    system_prompt: str = "You are a helpful assistant."
    token_limit: int = TOKEN_CEILING
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None

@dataclass(frozen=True)
class CallShape:
    """Result of disambiguating the positional formula arguments."""

    range_input: Any = None
    toolkit_name: Optional[str] = None
    options_payload: Any = None

@dataclass(frozen=True)
class CanonicalRequest:
    prompt: str
    context: str
    sheet_identity: str
    toolkit_name: Optional[str]
    options: ResolvedOptions

    @property
    def is_agentic(self) -> bool:
        return bool(self.toolkit_name and self.toolkit_name.strip())
