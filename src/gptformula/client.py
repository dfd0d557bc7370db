"""GptFormula: the formula entry point.

GPT(prompt, [range], [tools_or_options], [options]) accepts loosely typed
positional arguments. classify_arguments() resolves them once into a
CallShape; everything downstream works on the CanonicalRequest.

Every failure is turned into a "#GPT_ERROR: ..." or "#AGENT_ERROR: ..." string.
A formula never raises.
"""
from __future__ import annotations

import getpass
import os
from datetime import date
from pathlib import Path
from typing import Any, Callable, Optional

from .adapters.base import BaseChatAdapter
from .adapters.openai_style import OpenAIStyleAdapter
from .agent import AgentOrchestrator
from .cache import (
    CacheBackend,
    CacheGateway,
    MemoryCache,
    RedisCache,
    build_agent_cache_key,
    build_cache_key,
)
from .completion import CompletionClient
from .config_store import (
    API_KEY,
    ConfigStore,
    JsonFileConfigStore,
    MemoryConfigStore,
    get_or_init_cache_version,
    rotate_cache_version,
)
from .errors import (
    AdmissionRejectedError,
    ConfigMissingError,
    GptFormulaError,
    MissingInputError,
)
from .normalize import (
    extract_sheet_identity,
    first_line,
    is_grid_like,
    parse_options_payload,
    to_context,
)
from .options import resolve_options
from .settings import Settings, load_settings
from .tokens import effective_token_limit, estimate_tokens
from .tools.builtin import default_registry
from .tools.registry import ToolkitRegistry
from .types import CallShape, CanonicalRequest
from .logging_util import get_logger, log_step

logger = get_logger(__name__)

GPT_ERROR = "#GPT_ERROR"
AGENT_ERROR = "#AGENT_ERROR"

JSON_OPTIONS = {"format": "json"}

def _is_range_candidate(value: Any) -> bool:
    if is_grid_like(value):
        return True
    # A single cell arrives as a bare scalar; it can be neither a toolkit name
    # nor an options payload.
    return isinstance(value, (int, float, date))

def _is_toolkit_name(value: Any) -> bool:
    return isinstance(value, str) and not value.lstrip().startswith("{")

def classify_arguments(*args: Any) -> CallShape:
    """Resolve the optional positional arguments that follow the prompt."""
    collected = [a for a in args if a is not None]
    range_input = None
    toolkit_name = None
    options_payload = None

    if collected and _is_range_candidate(collected[0]):
        range_input = collected.pop(0)

    if collected and _is_toolkit_name(collected[0]):
        toolkit_name = collected.pop(0)

    if collected:
        options_payload = collected.pop(0)

    if collected:
        logger.warning("Ignoring %d extra argument(s)", len(collected))

    return CallShape(range_input=range_input, toolkit_name=toolkit_name, options_payload=options_payload)

def render_error(exc: BaseException, agentic: bool) -> str:
    prefix = AGENT_ERROR if agentic else GPT_ERROR
    detail = str(exc) or type(exc).__name__
    return f"{prefix}: {detail}"

class GptFormula:
    def __init__(
        self,
        project_root: Optional[Path] = None,
        settings: Optional[Settings] = None,
        config_store: Optional[ConfigStore] = None,
        cache: Optional[CacheBackend] = None,
        adapter: Optional[BaseChatAdapter] = None,
        registry: Optional[ToolkitRegistry] = None,
    ):
        # Auto-detect root:
        # <root>/src/gptformula/client.py -> parents[2] == <root>
        self.project_root = project_root or Path(__file__).resolve().parents[2]
        self.settings = settings or load_settings(self.project_root)

        self.store = config_store or self._build_store()
        self.cache = CacheGateway(cache if cache is not None else self._build_cache())

        adapter = adapter or OpenAIStyleAdapter(endpoint=self.settings.endpoint, timeout=self.settings.timeout_s)
        self.completion = CompletionClient(adapter)
        self.agent = AgentOrchestrator(adapter, registry or default_registry())

    def _build_store(self) -> ConfigStore:
        if not self.settings.store_path:
            return MemoryConfigStore()
        path = Path(self.settings.store_path)
        if not path.is_absolute():
            path = self.project_root / path
        return JsonFileConfigStore(path)

    def _build_cache(self) -> CacheBackend:
        if self.settings.cache_backend == "redis" and self.settings.redis_url:
            return RedisCache(self.settings.redis_url)
        return MemoryCache()

    # ------------------------------------------------------------------
    # Formula functions
    # ------------------------------------------------------------------
    def gpt(self, prompt: Any, range_input: Any = None, tools_or_options: Any = None, raw_options: Any = None) -> str:
        return self.run(prompt, classify_arguments(range_input, tools_or_options, raw_options))

    def gpt_json(self, prompt: Any, range_input: Any = None) -> str:
        return self.run(prompt, CallShape(range_input=range_input, toolkit_name=None, options_payload=JSON_OPTIONS))

    def run(self, prompt: Any, shape: CallShape) -> str:
        agentic = False
        try:
            log_step(logger, "1", "validate prompt")
            prompt_text = "" if prompt is None else str(prompt)
            if not prompt_text.strip():
                raise MissingInputError("Missing prompt")

            log_step(logger, "2", "resolve credential")
            api_key = self._api_key()

            log_step(logger, "3", "normalize inputs")
            request = CanonicalRequest(
                prompt=prompt_text,
                context=to_context(shape.range_input),
                sheet_identity=extract_sheet_identity(shape.range_input),
                toolkit_name=shape.toolkit_name,
                options=resolve_options(parse_options_payload(shape.options_payload)),
            )
            agentic = request.is_agentic

            log_step(logger, "4", "cache lookup")
            key = self._cache_key(request)
            cached = self.cache.read(key)
            if cached is not None:
                logger.info("cache hit: %s", first_line(request.prompt))
                return cached

            if agentic:
                log_step(logger, "5", "agent run toolkit=%s", request.toolkit_name)
                result = self.agent.run(request, api_key)
            else:
                self._check_admission(request)
                log_step(logger, "5", "completion model=%s", request.options.model)
                result = self.completion.complete(request, api_key)

            log_step(logger, "6", "cache write")
            self.cache.write(key, result, request.options.cache_ttl_seconds)
            return result

        except GptFormulaError as e:
            logger.warning("formula failed (%s): %s", type(e).__name__, e)
            return render_error(e, agentic)
        except Exception as e:
            logger.exception("formula failed unexpectedly: %s", e)
            return render_error(e, agentic)

    def _api_key(self) -> str:
        key = (self.store.get(API_KEY) or "").strip()
        if not key and self.settings.api_key_env:
            key = (os.environ.get(self.settings.api_key_env) or "").strip()
        if not key:
            raise ConfigMissingError("API_KEY_MISSING")
        return key

    def _cache_key(self, request: CanonicalRequest) -> str:
        version = get_or_init_cache_version(self.store)
        if request.is_agentic:
            return build_agent_cache_key(
                request.prompt,
                request.context,
                request.sheet_identity,
                request.options,
                request.toolkit_name,
                version,
            )
        return build_cache_key(request.prompt, request.context, request.sheet_identity, request.options, version)

    @staticmethod
    def _check_admission(request: CanonicalRequest) -> None:
        options = request.options
        estimated = estimate_tokens(request.prompt, request.context, options.system_prompt, options.max_tokens)
        limit = effective_token_limit(options)
        if estimated > limit:
            raise AdmissionRejectedError(estimated, limit)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------
    def set_api_key(self, key: str) -> None:
        key = (key or "").strip()
        if not key:
            raise ValueError("API key is empty")
        self.store.set(API_KEY, key)
        logger.info("API key stored (len=%d)", len(key))

    def clear_api_key(self) -> None:
        self.store.delete(API_KEY)
        logger.info("API key cleared")

    def prompt_api_key(self, reader: Callable[[str], str] = getpass.getpass) -> bool:
        entered = (reader("OpenAI API key: ") or "").strip()
        if not entered:
            logger.info("No API key entered; store unchanged")
            return False
        self.set_api_key(entered)
        return True

    def flush_cache(self) -> str:
        return rotate_cache_version(self.store)

# ----------------------------------------------------------------------
# Spreadsheet-style module functions
# ----------------------------------------------------------------------
_default: Optional[GptFormula] = None

def get_default() -> GptFormula:
    global _default
    if _default is None:
        _default = GptFormula()
    return _default

def reset_default() -> None:
    """Reset the singleton (for testing)."""
    global _default
    _default = None

def GPT(prompt: Any, range_input: Any = None, tools_or_options: Any = None, raw_options: Any = None) -> str:
    return get_default().gpt(prompt, range_input, tools_or_options, raw_options)

def GPT_JSON(prompt: Any, range_input: Any = None) -> str:
    return get_default().gpt_json(prompt, range_input)
