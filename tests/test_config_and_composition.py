from __future__ import annotations

from pathlib import Path

import pytest

from record_kb.application.use_cases.index_service import IndexService
from record_kb.composition import build_index_service
from record_kb.config import Settings
from record_kb.exceptions import ConfigurationError
from record_kb.infra.stores import build_store
from record_kb.infra.stores.json_store import JsonFileStore


def test_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RKB_STORE_BACKEND", " Chroma ")
    monkeypatch.setenv("RKB_CHAR_LIMIT", "120")
    monkeypatch.setenv("RKB_LOG_LEVEL", "debug")
    s = Settings()
    assert s.store_backend == "chroma"
    assert s.char_limit == 120
    assert s.log_level == "DEBUG"


def test_settings_defaults() -> None:
    s = Settings(_env_file=None)
    assert s.char_limit == 900
    assert s.top_k == 4
    assert s.summary_limit == 10


def test_settings_reject_non_positive_limits() -> None:
    with pytest.raises(ValueError):
        Settings(char_limit=0)


def test_build_store_picks_json_backend(tmp_path: Path) -> None:
    store = build_store(Settings(store_backend="json", store_path=tmp_path / "c.json"))
    assert isinstance(store, JsonFileStore)
    assert store.path == tmp_path / "c.json"


def test_build_store_rejects_unknown_backend(tmp_path: Path) -> None:
    cfg = Settings(store_path=tmp_path / "c.json").model_copy(update={"store_backend": "mongo"})
    with pytest.raises(ConfigurationError):
        build_store(cfg)


def test_build_index_service_wires_limits(tmp_path: Path) -> None:
    cfg = Settings(store_path=tmp_path / "c.json", char_limit=50, summary_limit=3)
    svc = build_index_service(cfg)
    assert isinstance(svc, IndexService)
    assert svc.char_limit == 50
    assert svc.summary_limit == 3
    svc.ingest("u1", "hello world")
    assert svc.summarize("u1").total_chunks == 1
