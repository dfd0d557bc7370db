from src.gptformula.options import resolve_options
from src.gptformula.tokens import effective_token_limit, estimate_tokens


def test_defaults():
    o = resolve_options(None)
    assert o.model == "gpt-4o-mini"
    assert o.temperature == 0.7
    assert o.output_format == "text"
    assert o.response_char_limit == 2000
    assert o.cache_ttl_seconds == 3600
    assert o.token_limit == 16000
    assert o.top_p is None and o.max_tokens is None
    assert o.frequency_penalty is None and o.presence_penalty is None


def test_out_of_range_values_are_clamped():
    o = resolve_options({
        "temperature": 5,
        "presence_penalty": -10,
        "frequencyPenalty": 3,
        "topP": 1.5,
        "maxTokens": 50000,
        "tokenLimit": 99999,
        "cacheTtlSeconds": 100000,
        "responseCharLimit": 0,
    })
    assert o.temperature == 2
    assert o.presence_penalty == -2
    assert o.frequency_penalty == 2
    assert o.top_p == 1
    assert o.max_tokens == 16000
    assert o.token_limit == 16000
    assert o.cache_ttl_seconds == 21600
    assert o.response_char_limit == 1


def test_snake_case_aliases():
    o = resolve_options({"max_tokens": 200, "top_p": 0.5, "system_prompt": "Be terse.", "cache_ttl_seconds": 60})
    assert o.max_tokens == 200
    assert o.top_p == 0.5
    assert o.system_prompt == "Be terse."
    assert o.cache_ttl_seconds == 60


def test_camel_case_wins_over_snake_case():
    o = resolve_options({"maxTokens": 100, "max_tokens": 300})
    assert o.max_tokens == 100


def test_invalid_camel_case_falls_back_to_snake_case():
    o = resolve_options({"maxTokens": "lots", "max_tokens": 300})
    assert o.max_tokens == 300


def test_invalid_numbers_are_ignored():
    o = resolve_options({"temperature": "hot", "topP": True, "maxTokens": None, "tokenLimit": float("nan")})
    assert o.temperature == 0.7
    assert o.top_p is None
    assert o.max_tokens is None
    assert o.token_limit == 16000


def test_numeric_text_is_accepted():
    assert resolve_options({"temperature": "0.2"}).temperature == 0.2


def test_format_only_switches_for_json():
    assert resolve_options({"format": "JSON"}).output_format == "json"
    assert resolve_options({"response_format": "json"}).output_format == "json"
    assert resolve_options({"format": "xml"}).output_format == "text"
    assert resolve_options({"format": "yaml", "response_format": "json"}).output_format == "json"


def test_token_estimate():
    # 40 chars -> 10 tokens + 10 overhead
    assert estimate_tokens("a" * 20, "b" * 10, "c" * 10) == 20
    assert estimate_tokens("a" * 41, "", "") == 11 + 10
    assert estimate_tokens("abcd", "", "", max_tokens=200) == 211


def test_effective_token_limit():
    assert effective_token_limit(resolve_options({"tokenLimit": 500})) == 500
    assert effective_token_limit(resolve_options({})) == 16000
