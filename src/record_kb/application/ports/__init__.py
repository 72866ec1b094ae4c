from .chunk_store_port import ChunkStorePort

__all__ = [
    "ChunkStorePort",
]
