from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable

_NON_TERM_RE = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str) -> list[str]:
    """Lower-case ``text`` and split it into ``[a-z0-9]`` terms, left to right.

    >>> tokenize("Weight: 12kg, height 80cm.")
    ['weight', '12kg', 'height', '80cm']
    """
    return _NON_TERM_RE.sub(" ", (text or "").lower()).split()


def term_frequency(tokens: Iterable[str]) -> dict[str, int]:
    return dict(Counter(tokens))


def vectorize(text: str) -> tuple[dict[str, int], int]:
    """Return the term-frequency map of ``text`` and the token count behind it."""
    tokens = tokenize(text)
    return term_frequency(tokens), len(tokens)
