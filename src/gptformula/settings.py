"""Runtime settings.

settings.yaml (./src/configs/settings.yaml) provides the defaults; environment
variables override individual fields:

- GPTFORMULA_ENDPOINT       chat completions URL
- GPTFORMULA_TIMEOUT        HTTP timeout in seconds
- GPTFORMULA_API_KEY_ENV    env var consulted when the store holds no key
- GPTFORMULA_CACHE_BACKEND  "memory" or "redis"
- REDIS_URL                 redis connection URL
- GPTFORMULA_STORE_PATH     JSON file for the config store ("" -> in memory)
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict

import yaml

from .logging_util import get_logger

logger = get_logger(__name__)

@dataclass(frozen=True)
class Settings:
    endpoint: str = "https://api.openai.com/v1/chat/completions"
    timeout_s: int = 60
    api_key_env: str = "OPENAI_API_KEY"
    cache_backend: str = "memory"
    redis_url: str = ""
    store_path: str = ""

_ENV_OVERRIDES = {
    "endpoint": "GPTFORMULA_ENDPOINT",
    "timeout_s": "GPTFORMULA_TIMEOUT",
    "api_key_env": "GPTFORMULA_API_KEY_ENV",
    "cache_backend": "GPTFORMULA_CACHE_BACKEND",
    "redis_url": "REDIS_URL",
    "store_path": "GPTFORMULA_STORE_PATH",
}

def _load_yaml(path: Path) -> Dict:
    if not path.exists():
        return {}
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except Exception as e:
        logger.error("Failed to load YAML: %s (%s)", path, e)
        return {}

def settings_path(project_root: Path) -> Path:
    return project_root / "src" / "configs" / "settings.yaml"

def load_settings(project_root: Path) -> Settings:
    raw = _load_yaml(settings_path(project_root))
    if not isinstance(raw, dict):
        raw = {}

    values: Dict[str, Any] = {}
    for f in fields(Settings):
        v = raw.get(f.name)
        env_v = (os.environ.get(_ENV_OVERRIDES[f.name]) or "").strip()
        if env_v:
            v = env_v
        if v is None:
            continue
        if f.name == "timeout_s":
            try:
                v = int(v)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid timeout_s=%r", v)
                continue
        else:
            v = str(v).strip()
        values[f.name] = v

    settings = Settings(**values)
    logger.debug("Loaded settings: endpoint=%s cache=%s", settings.endpoint, settings.cache_backend)
    return settings
