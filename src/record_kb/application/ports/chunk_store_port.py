from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from record_kb.cancellation import CancellationToken
from record_kb.domain.chunk import Chunk


class ChunkStorePort(Protocol):
    """Owner-partitioned, append-only chunk persistence.

    Contract shared by every backend:
    - ``put_batch`` is all-or-nothing; readers never observe part of a batch.
    - ``query_by_owner`` returns the owner's chunks oldest first and an empty
      list for an unknown owner.
    - Once ``put_batch`` returns, a ``query_by_owner`` in the same process sees
      the new chunks.
    Backend failures raise ``StoreError``.
    """

    def put_batch(
        self, chunks: Sequence[Chunk], *, cancel: CancellationToken | None = None
    ) -> None:  # pragma: no cover - interface
        ...

    def query_by_owner(
        self, owner: str, *, cancel: CancellationToken | None = None
    ) -> list[Chunk]:  # pragma: no cover - interface
        ...
