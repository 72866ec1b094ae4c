from __future__ import annotations

import hashlib
import math

from langchain_core.embeddings import Embeddings

from record_kb.domain.terms import vectorize


def _bucket(term: str, dim: int) -> int:
    # Stable across processes, unlike the salted built-in hash()
    digest = hashlib.blake2b(term.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") % dim


class TermHashEmbeddings(Embeddings):
    """Deterministic feature-hashed projection of a text's term frequencies.

    Chroma insists on a vector per record; this keeps it local and model free.
    Ranking never looks at these vectors.
    """

    def __init__(self, dim: int = 64) -> None:
        if dim < 1:
            raise ValueError(f"dim must be positive, got {dim}")
        self.dim = int(dim)

    def _embed(self, text: str) -> list[float]:
        vec = [0.0] * self.dim
        tf, _ = vectorize(text)
        for term, count in tf.items():
            vec[_bucket(term, self.dim)] += float(count)
        norm = math.sqrt(sum(v * v for v in vec))
        if norm == 0:
            return vec
        return [v / norm for v in vec]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._embed(text)
