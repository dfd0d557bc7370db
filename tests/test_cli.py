import sys

import pytest

import cli
from src.gptformula.config_store import API_KEY, CACHE_VERSION_KEY
from src.gptformula.errors import RemoteFailureError
from tests.helpers import FakeAdapter, text_reply


@pytest.fixture
def run_cli(monkeypatch, make_formula):
    def _run(argv, adapter=None):
        formula = make_formula(adapter or FakeAdapter())
        monkeypatch.setattr(cli, "GptFormula", lambda: formula)
        monkeypatch.setattr(sys, "argv", ["cli.py", *argv])
        cli.main()
        return formula
    return _run


def test_set_key_and_clear_key(run_cli, capsys):
    formula = run_cli(["set-key", "sk-new"])
    assert formula.store.get(API_KEY) == "sk-new"
    assert "API key saved." in capsys.readouterr().out

    formula = run_cli(["clear-key"])
    assert formula.store.get(API_KEY) is None


def test_flush_cache_rotates_version(run_cli, store, capsys):
    store.set(CACHE_VERSION_KEY, "v1")
    run_cli(["flush-cache"])
    assert store.get(CACHE_VERSION_KEY) not in (None, "v1")
    assert "Cache invalidated." in capsys.readouterr().out


def test_gpt_prints_answer(run_cli, capsys):
    adapter = FakeAdapter([text_reply("Result A")])
    run_cli(["gpt", "Summarize", "--range", '[["a", 1]]', "--sheet", "Data"], adapter)
    assert capsys.readouterr().out.strip() == "Result A"
    assert adapter.calls[0]["messages"][1]["content"] == "Summarize\n\n### Data:\na\t1"


def test_gpt_error_exits_with_1(run_cli, capsys):
    with pytest.raises(SystemExit) as exc:
        run_cli(["gpt", "Summarize"], FakeAdapter([RemoteFailureError("Invalid API key")]))
    assert exc.value.code == 1
    assert capsys.readouterr().out.strip() == "#GPT_ERROR: Invalid API key"


def test_bad_range_exits_with_2(run_cli):
    adapter = FakeAdapter()
    with pytest.raises(SystemExit) as exc:
        run_cli(["json", "List colors", "--range", "[not json"], adapter)
    assert exc.value.code == 2
    assert adapter.calls == []
