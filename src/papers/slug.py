"""Citation-style names for papers: surname + optional year + title slug.

Used by the ``key`` rename strategy, e.g. "Folding DNA to Create
Nanoscale Shapes" by Paul Rothemund with label year=2006 gives
``rothemund2006foldingdna``.
"""

from __future__ import annotations

import re
from unicodedata import normalize

from stop_words import get_stop_words

from papers.errors import RenameError
from papers.paper import PaperMeta

_ENGLISH_STOPS = frozenset(get_stop_words("en"))

# Common in paper titles but say nothing about the paper
_ACADEMIC_FILLER = frozenset(
    {
        "analysis",
        "approach",
        "based",
        "comprehensive",
        "efficient",
        "improved",
        "method",
        "methods",
        "novel",
        "overview",
        "review",
        "study",
        "survey",
        "towards",
    }
)

STOPWORDS = _ENGLISH_STOPS | _ACADEMIC_FILLER

# Minimum length for a word to stand alone as the slug
LONG_WORD = 8


def _ascii_lower(text: str) -> str:
    return normalize("NFKD", text).encode("ascii", "ignore").decode().lower()


def slug_from_title(title: str, max_words: int = 2) -> str:
    """One long distinctive word, or up to *max_words* shorter ones.

    Returns an empty string when the title has no usable words.
    """
    words = re.findall(r"[a-z]{3,}", _ascii_lower(title))
    meaningful = [w for w in words if w not in STOPWORDS]
    if not meaningful:
        return ""
    if len(meaningful[0]) >= LONG_WORD:
        return meaningful[0]
    return "".join(meaningful[:max_words])


def surname(author: str) -> str:
    """Surname of an author written "Last, First" or "First Last"."""
    author = author.strip()
    if "," in author:
        last = author.split(",", 1)[0]
    else:
        parts = author.split()
        last = parts[-1] if parts else ""
    return re.sub(r"[^a-z]", "", _ascii_lower(last))


def citation_key(meta: PaperMeta) -> str:
    """Build ``surname[year]slug`` for *meta*.

    The year comes from a ``year`` label when present.

    Raises:
        RenameError: No authors, or nothing usable in the surname or title.
    """
    if not meta.authors:
        raise RenameError("missing authors")
    name = surname(meta.authors[0])
    if not name:
        raise RenameError(f"no usable surname in author '{meta.authors[0]}'")
    slug = slug_from_title(meta.title)
    if not slug:
        raise RenameError(f"no distinctive words in title '{meta.title}'")
    year = meta.labels.get("year")
    year_part = str(year) if isinstance(year, (int, str)) and not isinstance(year, bool) else ""
    return f"{name}{year_part}{slug}"
