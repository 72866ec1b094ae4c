from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from itertools import count
from pathlib import Path

import pytest

from record_kb.application.ports.chunk_store_port import ChunkStorePort
from record_kb.application.use_cases.index_service import IndexService
from record_kb.cancellation import CancellationToken
from record_kb.domain.chunk import Chunk
from record_kb.exceptions import StoreError, ValidationError
from record_kb.infra.stores.json_store import JsonFileStore

ANC_RECORD = "Patient received antenatal care visit on Monday.\n\nWeight: 12kg, height 80cm."

# --- Fakes -------------------------------------------------------------------


class FakeStore(ChunkStorePort):
    def __init__(self) -> None:
        self.batches: list[list[Chunk]] = []
        self.queries = 0

    def put_batch(
        self, chunks: Sequence[Chunk], *, cancel: CancellationToken | None = None
    ) -> None:
        self.batches.append(list(chunks))

    def query_by_owner(
        self, owner: str, *, cancel: CancellationToken | None = None
    ) -> list[Chunk]:
        self.queries += 1
        rows = [c for b in self.batches for c in b if c.owner == owner]
        return sorted(rows, key=lambda c: c.created_at)


class BrokenStore(ChunkStorePort):
    def put_batch(
        self, chunks: Sequence[Chunk], *, cancel: CancellationToken | None = None
    ) -> None:
        raise StoreError("backend unreachable")

    def query_by_owner(
        self, owner: str, *, cancel: CancellationToken | None = None
    ) -> list[Chunk]:
        raise StoreError("backend unreachable")


def _ticking_clock(start: datetime | None = None):
    t0 = start or datetime(2024, 5, 1, tzinfo=timezone.utc)
    ticks = count()
    return lambda: t0 + timedelta(seconds=next(ticks))


@pytest.fixture
def svc(tmp_path: Path) -> IndexService:
    return IndexService(store=JsonFileStore(tmp_path / "chunks.json"), clock=_ticking_clock())


# --- Ingest ------------------------------------------------------------------


def test_ingest_short_record_yields_single_chunk(svc: IndexService) -> None:
    chunks = svc.ingest("mother-1", ANC_RECORD)
    assert len(chunks) == 1
    c = chunks[0]
    assert "antenatal care" in c.text and "Weight: 12kg" in c.text
    assert c.owner == "mother-1"
    assert c.term_frequency["weight"] == 1
    assert c.token_count == sum(c.term_frequency.values())


def test_ingest_long_paragraph_yields_three_chunks(svc: IndexService) -> None:
    para = "0123456789" * 250
    chunks = svc.ingest("u1", para)
    assert [len(c.text) for c in chunks] == [900, 900, 700]
    assert "".join(c.text for c in chunks) == para
    # One batch shares one timestamp; ids are all distinct
    assert len({c.created_at for c in chunks}) == 1
    assert len({c.id for c in chunks}) == 3


def test_ingest_writes_one_batch_per_record() -> None:
    store = FakeStore()
    svc = IndexService(store=store, char_limit=10)
    svc.ingest("u1", "aaaaaaaa\n\nbbbbbbbb\n\ncccccccc")
    assert len(store.batches) == 1
    assert len(store.batches[0]) == 3


@pytest.mark.parametrize("owner", [None, "", "   "])
def test_ingest_requires_owner(owner: str | None) -> None:
    store = FakeStore()
    with pytest.raises(ValidationError):
        IndexService(store=store).ingest(owner, "text")  # type: ignore[arg-type]
    assert store.batches == []


@pytest.mark.parametrize("text", ["", "  \n\n  ", None])
def test_ingest_rejects_blank_text_before_touching_store(text: str | None) -> None:
    store = FakeStore()
    with pytest.raises(ValidationError):
        IndexService(store=store).ingest("u1", text)  # type: ignore[arg-type]
    assert store.batches == []


def test_ingest_surfaces_store_error() -> None:
    with pytest.raises(StoreError):
        IndexService(store=BrokenStore()).ingest("u1", ANC_RECORD)


def test_repeated_ingestion_duplicates_chunks(svc: IndexService) -> None:
    first = svc.ingest("u1", ANC_RECORD)
    second = svc.ingest("u1", ANC_RECORD)
    assert first[0].id != second[0].id
    assert svc.summarize("u1").total_chunks == 2
    hits = svc.retrieve("u1", "weight", 5)
    assert len(hits) == 2
    assert hits[0].text == hits[1].text


# --- Retrieve ----------------------------------------------------------------


def test_retrieve_finds_antenatal_record(svc: IndexService) -> None:
    (chunk,) = svc.ingest("mother-1", ANC_RECORD)
    hits = svc.retrieve("mother-1", "weight growth measurements", 3)
    assert len(hits) == 1
    assert hits[0].id == chunk.id
    assert hits[0].score > 0


def test_retrieve_unknown_owner_is_empty_not_error(svc: IndexService) -> None:
    assert svc.retrieve("nobody", "anything", 4) == []


def test_retrieve_never_crosses_owners(svc: IndexService) -> None:
    svc.ingest("owner-a", "vaccine schedule notes")
    svc.ingest("owner-b", "weight weight weight growth")
    hits = svc.retrieve("owner-a", "weight growth", 10)
    assert len(hits) == 1
    assert hits[0].text == "vaccine schedule notes"
    assert hits[0].score == 0.0


def test_retrieve_is_bounded_and_sorted(svc: IndexService) -> None:
    for text in ["growth chart", "weight", "weight growth", "height", "weight weight"]:
        svc.ingest("u1", text)
    hits = svc.retrieve("u1", "weight growth", 3)
    assert len(hits) == 3
    scores = [h.score for h in hits]
    assert scores == sorted(scores, reverse=True)
    assert hits[0].text == "weight growth"


def test_retrieve_validates_query_and_k(svc: IndexService) -> None:
    with pytest.raises(ValidationError):
        svc.retrieve("u1", "   ", 3)
    with pytest.raises(ValidationError):
        svc.retrieve("u1", "weight", 0)
    with pytest.raises(ValidationError):
        svc.retrieve("", "weight", 3)


def test_retrieve_surfaces_store_error_distinctly() -> None:
    with pytest.raises(StoreError):
        IndexService(store=BrokenStore()).retrieve("u1", "weight", 3)


# --- Summarize ---------------------------------------------------------------


def test_summarize_counts_and_keeps_latest_ten_in_order(svc: IndexService) -> None:
    for i in range(12):
        svc.ingest("u1", f"visit {i}")
    svc.ingest("u2", "other owner")
    s = svc.summarize("u1")
    assert s.owner == "u1"
    assert s.total_chunks == 12
    assert [c.text for c in s.latest_chunks] == [f"visit {i}" for i in range(2, 12)]


def test_summarize_empty_owner(svc: IndexService) -> None:
    s = svc.summarize("nobody")
    assert s.total_chunks == 0
    assert s.latest_chunks == ()


def test_service_rejects_bad_limits() -> None:
    with pytest.raises(ValidationError):
        IndexService(store=FakeStore(), char_limit=0)
    with pytest.raises(ValidationError):
        IndexService(store=FakeStore(), summary_limit=0)
