"""Single-file JSON chunk store.

The whole corpus lives in one document ``{"chunks": [...]}``. A batch is
committed by writing a complete new document next to the old one and swapping
it in with ``os.replace``, so a reader opens either the old or the new file.
Writers, including ones in other processes, are serialised by a
``FileLock`` on a sibling ``<path>.lock`` file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from record_kb.cancellation import CancellationToken, check_cancelled
from record_kb.domain.chunk import Chunk
from record_kb.exceptions import StoreError

log = logging.getLogger(__name__)

# One writer lock per resolved file, shared by every store instance in the process
_LOCKS: dict[Path, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = path.resolve()
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.Lock()
        return lock


class JsonFileStore:
    def __init__(self, path: Path | str, *, lock_timeout: float = 30.0) -> None:
        self.path = Path(path)
        self.lock_timeout = float(lock_timeout)
        self._lock = _lock_for(self.path)
        self._file_lock = FileLock(f"{self.path}.lock")

    def _read_records(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupt chunk store {self.path}: {e}") from e
        except OSError as e:
            raise StoreError(f"Cannot read chunk store {self.path}: {e}") from e
        records = data.get("chunks") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise StoreError(f"Corrupt chunk store {self.path}: missing 'chunks' list")
        if not all(isinstance(r, dict) for r in records):
            raise StoreError(f"Corrupt chunk store {self.path}: non-object entry in 'chunks'")
        return records

    def _write_records(self, records: list[dict[str, Any]]) -> None:
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                json.dump({"chunks": records}, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    def put_batch(
        self, chunks: Sequence[Chunk], *, cancel: CancellationToken | None = None
    ) -> None:
        if not chunks:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create store directory for {self.path}: {e}") from e
        with self._lock:
            try:
                self._file_lock.acquire(timeout=self.lock_timeout)
            except Timeout as e:
                raise StoreError(
                    f"Timed out acquiring {self._file_lock.lock_file} after {self.lock_timeout}s; "
                    "another writer may be stalled"
                ) from e
            try:
                # Re-read under the lock so batches committed by other processes are kept
                records = self._read_records()
                records.extend(c.to_record() for c in chunks)
                check_cancelled(cancel, "put_batch")
                try:
                    self._write_records(records)
                except OSError as e:
                    log.error("Write to %s failed: %s", self.path, e)
                    raise StoreError(f"Cannot write chunk store {self.path}: {e}") from e
            finally:
                self._file_lock.release()
        log.debug("Committed %d chunk(s) to %s", len(chunks), self.path)

    def query_by_owner(
        self, owner: str, *, cancel: CancellationToken | None = None
    ) -> list[Chunk]:
        check_cancelled(cancel, "query_by_owner")
        try:
            chunks = [Chunk.from_record(r) for r in self._read_records() if r.get("owner") == owner]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Corrupt record in {self.path}: {e}") from e
        # Stable: records sharing a timestamp keep file (insertion) order
        chunks.sort(key=lambda c: c.created_at)
        return chunks
