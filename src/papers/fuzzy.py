"""Fuzzy selection of papers by a free-text query (rapidfuzz)."""

from __future__ import annotations

from collections.abc import Sequence

from rapidfuzz import fuzz, process

from papers.paper import LoadedPaper

DEFAULT_SCORE_CUTOFF = 60.0


def describe(paper: LoadedPaper) -> str:
    """Text a query is matched against: title, authors, tags."""
    meta = paper.meta
    return " ".join([meta.title, *meta.authors, *sorted(meta.tags)])


def rank(
    papers: Sequence[LoadedPaper],
    query: str,
    limit: int | None = 10,
    score_cutoff: float = 0.0,
) -> list[tuple[LoadedPaper, float]]:
    """Papers ordered by similarity to *query*, best first."""
    choices = [describe(p) for p in papers]
    hits = process.extract(
        query,
        choices,
        scorer=fuzz.token_set_ratio,
        processor=str.lower,
        limit=limit,
        score_cutoff=score_cutoff,
    )
    return [(papers[idx], score) for _, score, idx in hits]


def select(
    papers: Sequence[LoadedPaper],
    query: str,
    score_cutoff: float = DEFAULT_SCORE_CUTOFF,
) -> LoadedPaper | None:
    """The single paper *query* refers to, or None.

    A case-insensitive exact match on the title or the note path wins
    outright; otherwise the best fuzzy match above *score_cutoff*.
    """
    needle = query.strip().lower()
    for paper in papers:
        if paper.meta.title.lower() == needle or paper.path.as_posix().lower() == needle:
            return paper
    hits = rank(papers, query, limit=1, score_cutoff=score_cutoff)
    return hits[0][0] if hits else None
