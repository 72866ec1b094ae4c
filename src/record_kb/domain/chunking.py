from __future__ import annotations

import re

from record_kb.exceptions import ValidationError

# A blank line is empty or whitespace only; a run of them separates paragraphs
_PARAGRAPH_BREAK_RE = re.compile(r"\n[ \t\f\v]*\n(?:[ \t\f\v]*\n)*")


def split_paragraphs(text: str) -> list[str]:
    t = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    return [p.strip() for p in _PARAGRAPH_BREAK_RE.split(t) if p.strip()]


def _hard_split(paragraph: str, char_limit: int) -> list[str]:
    slices = (paragraph[i : i + char_limit] for i in range(0, len(paragraph), char_limit))
    return [s for s in slices if s.strip()]


def chunk_text(text: str, char_limit: int = 900) -> list[str]:
    """Split a record into paragraph-aligned chunks of at most ``char_limit`` characters.

    Paragraphs are accumulated greedily, joined by a single newline. A paragraph
    that alone exceeds the limit is cut into consecutive slices of exactly
    ``char_limit`` characters (the last one may be shorter).

    Examples
    --------
    >>> chunk_text("alpha\\n\\nbeta", 20)
    ['alpha\\nbeta']
    >>> chunk_text("alpha\\n\\nbeta", 8)
    ['alpha', 'beta']
    """
    if char_limit < 1:
        raise ValidationError(f"char_limit must be positive, got {char_limit}")
    if not (text or "").strip():
        raise ValidationError("Cannot chunk empty text")

    chunks: list[str] = []
    buf = ""
    for p in split_paragraphs(text):
        if len(buf) + 1 + len(p) > char_limit:
            if buf:
                chunks.append(buf)
                buf = ""
            if len(p) > char_limit:
                chunks.extend(_hard_split(p, char_limit))
            else:
                buf = p
        else:
            buf = f"{buf}\n{p}" if buf else p
    if buf:
        chunks.append(buf)
    return chunks
