import json

import pytest

import lambda_function
from src.gptformula.cache import MemoryCache
from src.gptformula.client import GptFormula
from src.gptformula.config_store import API_KEY, MemoryConfigStore
from src.gptformula.settings import Settings
from tests.helpers import FakeAdapter, text_reply


@pytest.fixture
def adapter(monkeypatch, tmp_path):
    fake = FakeAdapter([text_reply("ok")])
    formula = GptFormula(
        project_root=tmp_path,
        settings=Settings(api_key_env=""),
        config_store=MemoryConfigStore({API_KEY: "sk"}),
        cache=MemoryCache(),
        adapter=fake,
    )
    monkeypatch.setattr(lambda_function, "_formula", formula)
    return fake


def _result(resp):
    assert resp["statusCode"] == 200
    return json.loads(resp["body"])["result"]


def test_api_gateway_body(adapter):
    event = {"body": json.dumps({"function": "GPT", "args": ["Summarize", [["a", 1]]]})}
    assert _result(lambda_function.lambda_handler(event, None)) == "ok"
    assert adapter.calls[0]["messages"][1]["content"].endswith("a\t1")


def test_range_marker_carries_sheet(adapter):
    event = {"function": "GPT", "args": ["Summarize", {"$range": {"values": [["x"]], "sheet": "Data"}}]}
    assert _result(lambda_function.lambda_handler(event, None)) == "ok"


def test_missing_prompt_and_unknown_function(adapter):
    assert _result(lambda_function.lambda_handler({"function": "GPT", "args": []}, None)) == "#GPT_ERROR: Missing prompt"
    assert _result(lambda_function.lambda_handler({"function": "NOPE", "args": ["x"]}, None)).startswith("#GPT_ERROR: Unknown function")
    assert adapter.calls == []


def test_flush_cache(adapter):
    assert _result(lambda_function.lambda_handler({"function": "FLUSH_CACHE"}, None)) == "Cache invalidated."
