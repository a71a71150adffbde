"""Predicate filtering over loaded papers, used by list and review."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from papers.paper import LoadedPaper, Primitive


@dataclass
class PaperFilter:
    """Conjunction of match criteria.

    ``file`` and ``title`` are case-insensitive substring matches. A paper
    must carry *all* of the given authors, tags and labels. A label filter
    with value ``None`` matches on the key alone.
    """

    file: str | None = None
    title: str | None = None
    authors: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    labels: dict[str, Primitive] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not (self.file or self.title or self.authors or self.tags or self.labels)

    def matches(self, paper: LoadedPaper) -> bool:
        meta = paper.meta
        if self.file:
            if meta.filename is None or self.file.lower() not in meta.filename.lower():
                return False
        if self.title and self.title.lower() not in meta.title.lower():
            return False
        if not all(a in meta.authors for a in self.authors):
            return False
        if not all(t in meta.tags for t in self.tags):
            return False
        for key, value in self.labels.items():
            if key not in meta.labels:
                return False
            if value is not None and meta.labels[key] != value:
                return False
        return True

    def apply(self, papers: Iterable[LoadedPaper]) -> list[LoadedPaper]:
        return [p for p in papers if self.matches(p)]
