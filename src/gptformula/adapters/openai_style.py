"""OpenAI-style chat.completions adapter.

One POST per call. No retries: re-evaluating the formula is the retry.
"""
from __future__ import annotations

import requests
from typing import Any, Dict, List

from ..errors import RemoteFailureError
from .base import BaseChatAdapter

# Optional sampling fields, only sent when the caller set them.
_OPTIONAL_FIELDS = ("top_p", "max_tokens", "frequency_penalty", "presence_penalty")

def _sanitize_api_key(raw: str) -> str:
    k = (raw or "").strip()
    k = k.strip(' "\'`')
    k = k.strip("“”‘’")
    return k

def _error_message(r: requests.Response) -> str:
    try:
        data = r.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
    return r.text[:800] or f"HTTP {r.status_code}"

def build_payload(messages: List[Dict[str, Any]], cfg: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "model": cfg.get("model"),
        "messages": messages,
        "temperature": cfg.get("temperature", 0.7),
    }
    for name in _OPTIONAL_FIELDS:
        if cfg.get(name) is not None:
            payload[name] = cfg[name]

    if cfg.get("return_json"):
        payload["response_format"] = {"type": "json_object"}

    if cfg.get("tools"):
        payload["tools"] = cfg["tools"]
        payload["tool_choice"] = cfg.get("tool_choice", "auto")

    return payload

class OpenAIStyleAdapter(BaseChatAdapter):
    def __init__(self, endpoint: str, timeout: int = 60):
        self.endpoint = endpoint
        self.timeout = timeout

    def generate(self, messages: List[Dict[str, Any]], cfg: Dict[str, Any], api_key: str) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {_sanitize_api_key(api_key)}",
            "Content-Type": "application/json",
        }
        payload = build_payload(messages, cfg)

        try:
            r = requests.post(self.endpoint, headers=headers, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteFailureError(f"request failed: {e}")

        if r.status_code >= 400:
            raise RemoteFailureError(_error_message(r), status_code=r.status_code)

        try:
            data = r.json()
        except ValueError:
            raise RemoteFailureError(f"invalid JSON from endpoint: {r.text[:200]}", status_code=r.status_code)

        if not isinstance(data, dict):
            raise RemoteFailureError("unexpected response body", status_code=r.status_code)
        if isinstance(data.get("error"), dict) and data["error"].get("message"):
            raise RemoteFailureError(str(data["error"]["message"]), status_code=r.status_code)
        return data
