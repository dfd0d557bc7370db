import pytest

from src.gptformula.cache import MemoryCache
from src.gptformula.client import GptFormula
from src.gptformula.config_store import API_KEY, MemoryConfigStore
from src.gptformula.settings import Settings


@pytest.fixture
def store():
    return MemoryConfigStore({API_KEY: "sk-test"})


@pytest.fixture
def make_formula(store, tmp_path):
    def _make(adapter, config_store=None, cache=None):
        return GptFormula(
            project_root=tmp_path,
            settings=Settings(api_key_env=""),
            config_store=config_store or store,
            cache=cache if cache is not None else MemoryCache(),
            adapter=adapter,
        )
    return _make
