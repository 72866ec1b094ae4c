from .chunk import Chunk, ScoredChunk, Summary
from .chunking import chunk_text
from .context import format_context
from .scoring import cosine_tf, rank
from .terms import term_frequency, tokenize, vectorize

__all__ = [
    "Chunk",
    "ScoredChunk",
    "Summary",
    "chunk_text",
    "cosine_tf",
    "format_context",
    "rank",
    "term_frequency",
    "tokenize",
    "vectorize",
]
