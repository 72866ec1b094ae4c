from .term_hash import TermHashEmbeddings

__all__ = ["TermHashEmbeddings"]
