from __future__ import annotations

from record_kb.application.ports.chunk_store_port import ChunkStorePort
from record_kb.config import Settings
from record_kb.exceptions import ConfigurationError

from .json_store import JsonFileStore


def build_store(settings: Settings) -> ChunkStorePort:
    backend = str(settings.store_backend).lower()
    if backend == "json":
        return JsonFileStore(settings.store_path)
    if backend == "chroma":
        # Imported lazily so the JSON backend works without loading Chroma
        from .chroma_store import ChromaChunkStore

        return ChromaChunkStore(
            settings.chroma_dir,
            settings.collection_name,
            embedding_dim=settings.embedding_dim,
        )
    raise ConfigurationError(f"Unknown store backend: {settings.store_backend!r}")


__all__ = ["JsonFileStore", "build_store"]
