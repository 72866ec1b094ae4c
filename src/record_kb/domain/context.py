from __future__ import annotations

from collections.abc import Sequence

from record_kb.domain.chunk import ScoredChunk

NO_CONTEXT = "[No stored records found for this user.]"


def format_context(scored: Sequence[ScoredChunk]) -> str:
    """Render retrieval hits as prompt context for a generation step.

    Format per hit:
    ---\\nContext i (score=0.123):\\nText...
    """
    if not scored:
        return NO_CONTEXT
    blocks = [
        f"---\nContext {i} (score={s.score:.3f}):\n{s.text}" for i, s in enumerate(scored, 1)
    ]
    return "\n\n".join(blocks)
