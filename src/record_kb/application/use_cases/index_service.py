from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from record_kb.application.ports.chunk_store_port import ChunkStorePort
from record_kb.cancellation import CancellationToken
from record_kb.domain.chunk import Chunk, ScoredChunk, Summary
from record_kb.domain.chunking import chunk_text
from record_kb.domain.scoring import rank
from record_kb.domain.terms import vectorize
from record_kb.exceptions import ValidationError

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _require_owner(owner: str | None) -> str:
    if owner is None or not str(owner).strip():
        raise ValidationError("owner is required")
    return str(owner)


@dataclass
class IndexService:
    """Ingest free-text records per owner and answer similarity queries.

    The store is the only shared state; every call is independent and safe to
    run concurrently with others.
    """

    store: ChunkStorePort
    char_limit: int = 900
    summary_limit: int = 10
    clock: Callable[[], datetime] = field(default=_utcnow)
    id_factory: Callable[[], str] = field(default=_new_id)

    def __post_init__(self) -> None:
        if self.char_limit < 1:
            raise ValidationError(f"char_limit must be positive, got {self.char_limit}")
        if self.summary_limit < 1:
            raise ValidationError(f"summary_limit must be positive, got {self.summary_limit}")

    def ingest(
        self, owner: str, text: str, *, cancel: CancellationToken | None = None
    ) -> list[Chunk]:
        """Chunk, vectorize and store ``text`` for ``owner`` as one atomic batch.

        Identical text ingested twice is stored twice.
        """
        owner = _require_owner(owner)
        if not (text or "").strip():
            raise ValidationError("Empty record text")

        created_at = self.clock()
        chunks: list[Chunk] = []
        for piece in chunk_text(text, self.char_limit):
            tf, n_tokens = vectorize(piece)
            chunks.append(
                Chunk(
                    id=self.id_factory(),
                    owner=owner,
                    text=piece,
                    term_frequency=tf,
                    token_count=n_tokens,
                    created_at=created_at,
                )
            )

        # StoreError propagates unchanged; the backend guarantees nothing partial is visible
        self.store.put_batch(chunks, cancel=cancel)
        log.info("Ingested %d chunk(s) for owner=%s", len(chunks), owner)
        return chunks

    def retrieve(
        self,
        owner: str,
        query: str,
        k: int = 4,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[ScoredChunk]:
        """Return at most ``k`` of the owner's chunks, best cosine score first.

        An owner without chunks yields ``[]``; a store outage raises ``StoreError``.
        """
        owner = _require_owner(owner)
        if not (query or "").strip():
            raise ValidationError("Empty query text")
        if k < 1:
            raise ValidationError(f"k must be positive, got {k}")

        query_tf, _ = vectorize(query)
        candidates = self.store.query_by_owner(owner, cancel=cancel)
        hits = rank(query_tf, candidates, k)
        log.debug(
            "Retrieved %d of %d candidate chunk(s) for owner=%s", len(hits), len(candidates), owner
        )
        return hits

    def summarize(self, owner: str, *, cancel: CancellationToken | None = None) -> Summary:
        owner = _require_owner(owner)
        records = self.store.query_by_owner(owner, cancel=cancel)
        return Summary(
            owner=owner,
            total_chunks=len(records),
            latest_chunks=tuple(records[-self.summary_limit :]),
        )
