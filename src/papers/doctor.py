"""Detect (and optionally repair) drift between notes, metadata and files.

Checks, for every regular file under the repo root:

* ``.md`` notes parse, and live at the path derived from their title;
* each paper's document file exists;
* every other file is referenced by some paper (otherwise: orphan).

Read-only unless ``fix`` is set, and even then nothing is deleted: fixing
only moves notes to their derived path and repoints a missing document
at an unreferenced file with the same name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from papers.errors import NoteError, PapersError
from papers.paper import LoadedPaper
from papers.paths import NOTE_SUFFIX, get_path
from papers.repo import Repo

logger = logging.getLogger(__name__)


@dataclass
class PathMismatch:
    actual: str
    expected: str
    fixed: bool = False
    reason: str = ""


@dataclass
class MissingDocument:
    note: str
    filename: str
    fixed_to: str | None = None


@dataclass
class DoctorReport:
    mismatched: list[PathMismatch] = field(default_factory=list)
    missing_documents: list[MissingDocument] = field(default_factory=list)
    orphans: list[str] = field(default_factory=list)
    unparseable: list[tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return (
            all(m.fixed for m in self.mismatched)
            and all(m.fixed_to for m in self.missing_documents)
            and not self.orphans
            and not self.unparseable
        )


def walk_files(root: Path) -> list[str]:
    """Root-relative POSIX paths of regular files, skipping dot-files and dot-directories."""
    found: list[str] = []
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root)
        if any(part.startswith(".") for part in rel.parts):
            continue
        if path.is_file():
            found.append(rel.as_posix())
    return found


def _root_relative(repo: Repo, filename: str) -> str:
    """*filename* as walk_files would list it, e.g. ``./a/../x.pdf`` -> ``x.pdf``."""
    try:
        return repo.resolve(filename).resolve().relative_to(repo.root).as_posix()
    except ValueError:
        return filename


def _fix_note_path(repo: Repo, mismatch: PathMismatch) -> None:
    if repo.resolve(mismatch.expected).exists():
        mismatch.reason = "destination exists"
        logger.warning("Cannot move %s, %s already exists", mismatch.actual, mismatch.expected)
        return
    repo.move(mismatch.actual, mismatch.expected)
    mismatch.fixed = True


def doctor(repo: Repo, fix: bool = False) -> DoctorReport:
    """Scan *repo* and report (or, with *fix*, realign) drift."""
    report = DoctorReport()
    papers: list[LoadedPaper] = []
    candidates: list[str] = []

    for rel in walk_files(repo.root):
        if not rel.endswith(NOTE_SUFFIX):
            candidates.append(rel)
            continue
        try:
            paper = repo.get_paper(rel)
        except NoteError as e:
            logger.warning("Cannot parse %s: %s", rel, e)
            report.unparseable.append((rel, str(e)))
            continue
        papers.append(paper)

        expected = get_path(paper.meta).as_posix()
        if rel != expected:
            mismatch = PathMismatch(actual=rel, expected=expected)
            logger.warning("Note %s should be at %s", rel, expected)
            if fix:
                try:
                    _fix_note_path(repo, mismatch)
                except (PapersError, OSError) as e:
                    mismatch.reason = str(e)
                    logger.warning("Failed to move %s: %s", rel, e)
                else:
                    if mismatch.fixed:
                        paper.path = Path(expected)
            report.mismatched.append(mismatch)

    accounted: set[str] = set()
    missing: list[tuple[LoadedPaper, str]] = []
    for paper in papers:
        filename = paper.meta.filename
        if filename is None:
            continue
        if repo.resolve(filename).is_file():
            accounted.add(_root_relative(repo, filename))
        else:
            missing.append((paper, filename))

    unaccounted = [c for c in candidates if c not in accounted]

    for paper, filename in missing:
        entry = MissingDocument(note=paper.path.as_posix(), filename=filename)
        logger.warning("Paper %s references missing file %s", entry.note, filename)
        if fix:
            name = PurePosixPath(filename).name
            matches = [c for c in unaccounted if PurePosixPath(c).name == name]
            if len(matches) == 1:
                repo.update(paper, repo.resolve(matches[0]))
                entry.fixed_to = matches[0]
                unaccounted.remove(matches[0])
                logger.info("Repointed %s to %s", entry.note, matches[0])
        report.missing_documents.append(entry)

    for orphan in unaccounted:
        logger.warning("File %s is not referenced by any paper", orphan)
    report.orphans = unaccounted
    return report
