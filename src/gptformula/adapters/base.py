"""Adapter interface for the chat-completion endpoint."""
from __future__ import annotations

from typing import Any, Dict, List

class BaseChatAdapter:
    def generate(self, messages: List[Dict[str, Any]], cfg: Dict[str, Any], api_key: str) -> Dict[str, Any]:
        raise NotImplementedError
