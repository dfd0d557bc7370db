from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from .models import ToolDefinition


class Toolkit:
    """A named, fixed set of tools exposed to the model together."""

    def __init__(self, name: str, tools: Iterable[ToolDefinition] = ()) -> None:
        self.name = name
        self._tools: Dict[str, ToolDefinition] = {t.name: t for t in tools}

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def list(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def descriptors(self) -> List[dict]:
        return [t.descriptor() for t in self._tools.values()]


class ToolkitRegistry:
    """
    Maps toolkit names to their statically declared tools.

    Resolving an unknown name gives an empty toolkit rather than None so the
    caller has a single "nothing to offer the model" check.
    """

    def __init__(self, toolkits: Iterable[Tuple[str, Iterable[ToolDefinition]]] = ()) -> None:
        self._toolkits: Dict[str, Toolkit] = {}
        for name, tools in toolkits:
            self.register(name, tools)

    def register(self, name: str, tools: Iterable[ToolDefinition]) -> None:
        self._toolkits[name.strip().lower()] = Toolkit(name.strip().lower(), tools)

    def names(self) -> List[str]:
        return sorted(self._toolkits)

    def resolve(self, name: Optional[str]) -> Toolkit:
        key = (name or "").strip().lower()
        return self._toolkits.get(key) or Toolkit(key)
