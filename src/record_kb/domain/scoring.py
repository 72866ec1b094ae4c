from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

from record_kb.domain.chunk import Chunk, ScoredChunk


def cosine_tf(a: Mapping[str, int], b: Mapping[str, int]) -> float:
    """Cosine similarity of two sparse term-frequency maps.

    Keys missing from one side count as 0. A zero vector on either side
    yields 0.0.
    """
    dot = 0.0
    na = 0.0
    nb = 0.0
    for key in set(a) | set(b):
        x = a.get(key, 0)
        y = b.get(key, 0)
        dot += x * y
        na += x * x
        nb += y * y
    if na == 0 or nb == 0:
        return 0.0
    sim = dot / (math.sqrt(na) * math.sqrt(nb))
    # Float rounding can push self-similarity a hair above 1
    return min(1.0, max(0.0, sim))


def rank(query_tf: Mapping[str, int], candidates: Sequence[Chunk], k: int) -> list[ScoredChunk]:
    """Score ``candidates`` against ``query_tf`` and keep the best ``k``.

    The sort is stable, so equal scores keep the candidates' chronological order.
    """
    if k <= 0 or not candidates:
        return []
    scored = [
        ScoredChunk(id=c.id, text=c.text, score=cosine_tf(query_tf, c.term_frequency))
        for c in candidates
    ]
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored[:k]
