"""Local per-user record retrieval: chunking, term-frequency vectors and cosine ranking."""

__version__ = "0.1.0"
