import pytest

from src.gptformula.config_store import API_KEY, JsonFileConfigStore
from src.gptformula.settings import _ENV_OVERRIDES, Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _ENV_OVERRIDES.values():
        monkeypatch.delenv(var, raising=False)


def _write_settings(root, text):
    d = root / "src" / "configs"
    d.mkdir(parents=True, exist_ok=True)
    (d / "settings.yaml").write_text(text, encoding="utf-8")


def test_missing_settings_file_gives_defaults(tmp_path):
    assert load_settings(tmp_path) == Settings()


def test_yaml_then_env_overrides(tmp_path, monkeypatch):
    _write_settings(tmp_path, "endpoint: https://proxy.test/v1/chat/completions\ntimeout_s: 15\ncache_backend: redis\n")
    monkeypatch.setenv("GPTFORMULA_TIMEOUT", "42")
    s = load_settings(tmp_path)
    assert s.endpoint == "https://proxy.test/v1/chat/completions"
    assert s.timeout_s == 42
    assert s.cache_backend == "redis"


def test_invalid_yaml_is_ignored(tmp_path):
    _write_settings(tmp_path, "timeout_s: [unclosed\n")
    assert load_settings(tmp_path).timeout_s == Settings().timeout_s


def test_json_file_store_persists(tmp_path):
    path = tmp_path / "state" / "props.json"
    store = JsonFileConfigStore(path)
    assert store.get(API_KEY) is None
    store.set(API_KEY, "sk-1")
    assert JsonFileConfigStore(path).get(API_KEY) == "sk-1"
    store.delete(API_KEY)
    assert JsonFileConfigStore(path).get(API_KEY) is None
