"""Rename files so their names follow the paper metadata.

For each paper, the document file is renamed to a name produced by a
:class:`Strategy` (keeping its directory, with an extension sniffed from
the content) and the note file is moved to its derived path. Existing
destinations are never overwritten. Failures are recorded per paper and
the pass carries on.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from papers.errors import PapersError, RenameError
from papers.extract import detect_extension
from papers.paper import LoadedPaper, PaperMeta
from papers.paths import get_path, strip_prohibited
from papers.repo import Repo
from papers.slug import citation_key

logger = logging.getLogger(__name__)


class Strategy(enum.Enum):
    """How to name a paper's document file."""

    TITLE = "title"  # sanitized title
    KEY = "key"  # citation key, e.g. rothemund2006foldingdna

    def rename(self, meta: PaperMeta) -> str:
        """Candidate base name (no extension) for *meta*'s document.

        Raises:
            RenameError: The strategy cannot name this paper.
        """
        if self is Strategy.TITLE:
            name = strip_prohibited(meta.title).strip()
            if not name:
                raise RenameError("missing title")
            return name
        return strip_prohibited(citation_key(meta))


# RenameAction.status values
MOVED = "moved"
PLANNED = "planned"  # dry run
UNCHANGED = "unchanged"
EXISTS = "exists"  # destination taken, skipped
MISSING = "missing"  # document file not on disk
FAILED = "failed"


@dataclass
class RenameAction:
    """One file considered by a rename pass."""

    kind: str  # "document" | "note"
    paper: Path  # note path when the action was decided
    source: str | None
    dest: str | None
    status: str
    reason: str = ""


@dataclass
class RenameReport:
    actions: list[RenameAction] = field(default_factory=list)

    def with_status(self, status: str) -> list[RenameAction]:
        return [a for a in self.actions if a.status == status]

    @property
    def moved(self) -> list[RenameAction]:
        return self.with_status(MOVED)

    @property
    def failed(self) -> list[RenameAction]:
        return self.with_status(FAILED)


def candidate_name(meta: PaperMeta, strategies: Sequence[Strategy]) -> str:
    """Name from the first strategy that succeeds."""
    if not strategies:
        raise RenameError("no rename strategy given")
    reasons = []
    for strategy in strategies:
        try:
            return strategy.rename(meta)
        except RenameError as e:
            reasons.append(f"{strategy.value}: {e.reason}")
    raise RenameError("; ".join(reasons))


def document_dest(repo: Repo, filename: str, name: str) -> str:
    """Root-relative destination for a document renamed to *name*."""
    current = PurePosixPath(filename)
    ext = detect_extension(repo.resolve(filename)) or current.suffix.lstrip(".")
    new_name = f"{name}.{ext}" if ext else name
    return (current.parent / new_name).as_posix()


def _rename_document(
    repo: Repo,
    paper: LoadedPaper,
    strategies: Sequence[Strategy],
    dry_run: bool,
) -> RenameAction | None:
    filename = paper.meta.filename
    if filename is None:
        return None
    if not repo.resolve(filename).is_file():
        return RenameAction("document", paper.path, filename, None, MISSING, "file not found")

    try:
        name = candidate_name(paper.meta, strategies)
    except RenameError as e:
        logger.warning("Failed to rename %s: %s", filename, e)
        return RenameAction("document", paper.path, filename, None, FAILED, e.reason)

    dest = document_dest(repo, filename, name)
    if dest == filename:
        return RenameAction("document", paper.path, filename, dest, UNCHANGED)
    if repo.resolve(dest).exists():
        logger.warning("Not renaming %s, %s already exists", filename, dest)
        return RenameAction("document", paper.path, filename, dest, EXISTS, "destination exists")
    if dry_run:
        logger.info("Would rename %s -> %s", filename, dest)
        return RenameAction("document", paper.path, filename, dest, PLANNED)

    repo.move(filename, dest)
    repo.update(paper, repo.resolve(dest))
    return RenameAction("document", paper.path, filename, dest, MOVED)


def _rename_note(repo: Repo, paper: LoadedPaper, dry_run: bool) -> RenameAction:
    source = paper.path.as_posix()
    dest = get_path(paper.meta).as_posix()
    if dest == source:
        return RenameAction("note", paper.path, source, dest, UNCHANGED)
    if repo.resolve(dest).exists():
        logger.warning("Not renaming note %s, %s already exists", source, dest)
        return RenameAction("note", paper.path, source, dest, EXISTS, "destination exists")
    if dry_run:
        logger.info("Would rename note %s -> %s", source, dest)
        return RenameAction("note", paper.path, source, dest, PLANNED)
    repo.move(source, dest)
    return RenameAction("note", paper.path, source, dest, MOVED)


def rename_files(
    repo: Repo,
    strategies: Sequence[Strategy],
    dry_run: bool = False,
) -> RenameReport:
    """Rename every paper's document and note to match its metadata."""
    report = RenameReport()
    for paper in repo.all_papers():
        try:
            action = _rename_document(repo, paper, strategies, dry_run)
            if action is not None:
                report.actions.append(action)
            report.actions.append(_rename_note(repo, paper, dry_run))
        except (PapersError, OSError) as e:
            logger.warning("Failed to rename files for %s: %s", paper.path, e)
            report.actions.append(
                RenameAction("note", paper.path, paper.path.as_posix(), None, FAILED, str(e))
            )
    logger.info(
        "Rename pass: %d moved, %d failed, %d considered",
        len(report.moved),
        len(report.failed),
        len(report.actions),
    )
    return report
