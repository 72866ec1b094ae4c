from __future__ import annotations

import json
import logging
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from langchain_chroma import Chroma

from record_kb.cancellation import CancellationToken, check_cancelled
from record_kb.domain.chunk import Chunk
from record_kb.exceptions import StoreError
from record_kb.infra.embeddings.term_hash import TermHashEmbeddings

log = logging.getLogger(__name__)


def _to_metadata(chunk: Chunk, seq: int) -> dict[str, Any]:
    # Chroma metadata values must be scalars; the TF map travels as JSON text
    return {
        "owner": chunk.owner,
        "term_frequency": json.dumps(dict(chunk.term_frequency), sort_keys=True),
        "token_count": int(chunk.token_count),
        "created_at": chunk.created_at.isoformat(),
        "seq": seq,
    }


def _from_row(chunk_id: str, text: str, md: dict[str, Any]) -> Chunk:
    return Chunk.from_record(
        {
            "id": chunk_id,
            "owner": md["owner"],
            "text": text,
            "term_frequency": json.loads(md.get("term_frequency") or "{}"),
            "token_count": md.get("token_count", 0),
            "created_at": md["created_at"],
        }
    )


class ChromaChunkStore:
    """Chunk store backed by a persistent Chroma collection.

    A batch goes to Chroma in a single ``add_texts`` call, which Chroma commits
    as one write. Reads and writes on one store instance are serialised.
    Lookups filter on ``owner`` and order by ``created_at`` here, since
    Chroma's ``get`` has no ordering.
    """

    def __init__(
        self,
        persist_dir: Path | str,
        collection: str = "record_chunks",
        *,
        embedding_dim: int = 64,
    ) -> None:
        self.persist_dir = Path(persist_dir)
        self.collection = collection
        self._lock = threading.Lock()
        try:
            self.persist_dir.mkdir(parents=True, exist_ok=True)
            self._db = Chroma(
                collection_name=collection,
                persist_directory=str(self.persist_dir),
                embedding_function=TermHashEmbeddings(embedding_dim),
            )
        except Exception as e:  # noqa: BLE001
            raise StoreError(f"Cannot open Chroma collection {collection!r}: {e}") from e

    def put_batch(
        self, chunks: Sequence[Chunk], *, cancel: CancellationToken | None = None
    ) -> None:
        if not chunks:
            return
        texts = [c.text for c in chunks]
        metadatas = [_to_metadata(c, i) for i, c in enumerate(chunks)]
        ids = [c.id for c in chunks]
        with self._lock:
            check_cancelled(cancel, "put_batch")
            try:
                self._db.add_texts(texts=texts, metadatas=metadatas, ids=ids)
            except Exception as e:  # noqa: BLE001
                log.error("Chroma write to %s failed: %s", self.collection, e)
                raise StoreError(f"Chroma rejected batch of {len(chunks)} chunk(s): {e}") from e
        log.debug("Committed %d chunk(s) to Chroma collection %s", len(chunks), self.collection)

    def query_by_owner(
        self, owner: str, *, cancel: CancellationToken | None = None
    ) -> list[Chunk]:
        check_cancelled(cancel, "query_by_owner")
        try:
            # Shares the writer lock so a read never lands between parts of one add
            with self._lock:
                got = self._db.get(where={"owner": owner}, include=["documents", "metadatas"])
        except Exception as e:  # noqa: BLE001
            log.warning("Chroma read from %s failed: %s", self.collection, e)
            raise StoreError(f"Cannot read Chroma collection {self.collection!r}: {e}") from e

        ids = got.get("ids") or []
        docs = got.get("documents") or []
        mds = got.get("metadatas") or []
        rows: list[tuple[int, Chunk]] = []
        try:
            for chunk_id, text, md in zip(ids, docs, mds, strict=True):
                rows.append((int((md or {}).get("seq", 0)), _from_row(chunk_id, text, md or {})))
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Corrupt record in Chroma collection {self.collection!r}: {e}") from e
        rows.sort(key=lambda r: (r[1].created_at, r[0]))
        return [c for _seq, c in rows]
