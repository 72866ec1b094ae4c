from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class Chunk:
    """One stored segment of an ingested record.

    Pure structure, independent of any storage backend. ``term_frequency`` is
    derived from ``text`` at ingestion time and never recomputed.
    """

    id: str
    owner: str
    text: str
    term_frequency: Mapping[str, int] = field(default_factory=dict)
    token_count: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def short(self, limit: int = 120) -> str:
        t = self.text.replace("\n", " ")
        return t[:limit] + ("..." if len(t) > limit else "")

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "text": self.text,
            "term_frequency": dict(self.term_frequency),
            "token_count": int(self.token_count),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Chunk:
        return cls(
            id=str(record["id"]),
            owner=str(record["owner"]),
            text=str(record["text"]),
            term_frequency={str(k): int(v) for k, v in dict(record.get("term_frequency") or {}).items()},
            token_count=int(record.get("token_count", 0)),
            created_at=_parse_ts(record["created_at"]),
        )


@dataclass(frozen=True)
class ScoredChunk:
    id: str
    text: str
    score: float


@dataclass(frozen=True)
class Summary:
    owner: str
    total_chunks: int
    latest_chunks: tuple[Chunk, ...] = ()
