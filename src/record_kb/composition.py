from __future__ import annotations

from record_kb.application.use_cases.index_service import IndexService
from record_kb.config import Settings, get_settings
from record_kb.infra.stores import build_store


def build_index_service(settings: Settings | None = None) -> IndexService:
    cfg = settings or get_settings()
    return IndexService(
        store=build_store(cfg),
        char_limit=cfg.char_limit,
        summary_limit=cfg.summary_limit,
    )
