"""Repository store — one markdown note file per paper in a directory.

The directory is the index: there is no database or manifest. A paper's
identity is its note path, derived from the title by
:func:`papers.paths.get_path`. The on-disk location of a loaded note is
authoritative; the derived path is only the reconciliation target.

Single writer, no locking: concurrent writes to the same note are
last-writer-wins.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from papers.errors import (
    AlreadyExists,
    InvalidTitle,
    MalformedFrontMatter,
    NoteError,
    OutsideRoot,
    PaperNotFound,
)
from papers.filters import PaperFilter
from papers.paper import LoadedPaper, PaperMeta, Primitive, now_naive, parse_note, render_note
from papers.paths import NOTE_SUFFIX, get_path, strip_prohibited
from papers.review import update_review

logger = logging.getLogger(__name__)

# Sentinel for "leave unchanged" where None is a meaningful value
UNSET = object()


@dataclass
class SkippedNote:
    """A note file that could not be parsed during a scan."""

    path: Path
    error: NoteError


@dataclass
class ScanResult:
    """Papers found by a directory scan, plus the notes that were skipped."""

    papers: list[LoadedPaper] = field(default_factory=list)
    skipped: list[SkippedNote] = field(default_factory=list)


class Repo:
    """A directory of paper notes."""

    def __init__(self, root: Path):
        self.root = root

    @classmethod
    def load(cls, root: Path | str) -> Repo:
        """Bind to *root*, resolved to an absolute canonical path.

        Raises:
            FileNotFoundError: root does not exist.
            NotADirectoryError: root is not a directory.
        """
        resolved = Path(root).expanduser().resolve(strict=True)
        if not resolved.is_dir():
            raise NotADirectoryError(f"Repository root is not a directory: {resolved}")
        logger.debug("Loaded repo at %s", resolved)
        return cls(resolved)

    def __repr__(self) -> str:
        return f"Repo({str(self.root)!r})"

    # -- paths -------------------------------------------------------------

    def resolve(self, path: Path | str) -> Path:
        """Absolute path for *path*; relative paths are taken against the root."""
        p = Path(path)
        return p if p.is_absolute() else self.root / p

    def relative_document(self, file: Path | str) -> str:
        """Root-relative POSIX path for a document file.

        Raises:
            FileNotFoundError: The file does not exist.
            OutsideRoot: The file's directory is not inside the root.
        """
        resolved = Path(file).expanduser().resolve(strict=True)
        if not resolved.parent.is_relative_to(self.root):
            raise OutsideRoot(str(file), str(self.root))
        return resolved.relative_to(self.root).as_posix()

    def _check_filename(self, filename: str | None) -> None:
        if filename is None:
            return
        resolved = (self.root / filename).resolve()
        if not resolved.parent.is_relative_to(self.root):
            raise OutsideRoot(filename, str(self.root))

    def _note_path(self, title: str) -> Path:
        if not strip_prohibited(title).strip():
            raise InvalidTitle(title)
        return get_path(PaperMeta(title=title))

    # -- reading -----------------------------------------------------------

    def get_paper(self, path: Path | str) -> LoadedPaper:
        """Read and parse the note at *path*.

        Raises:
            PaperNotFound: No file at *path*.
            NoFrontMatter, MalformedFrontMatter: The note does not parse.
        """
        full = self.resolve(path)
        if not full.is_file():
            raise PaperNotFound(str(path))
        try:
            text = full.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise MalformedFrontMatter(str(path), f"not UTF-8 text ({e.reason})") from e
        meta, notes = parse_note(text, str(path))
        try:
            rel = full.relative_to(self.root)
        except ValueError:
            rel = full
        return LoadedPaper(path=rel, meta=meta, notes=notes)

    def scan(self) -> ScanResult:
        """Parse every ``.md`` file directly under the root.

        Notes that fail to parse are collected in ``skipped`` rather than
        aborting the scan.
        """
        result = ScanResult()
        for entry in sorted(self.root.iterdir()):
            if entry.suffix != NOTE_SUFFIX or not entry.is_file():
                continue
            try:
                result.papers.append(self.get_paper(entry.name))
            except NoteError as e:
                logger.warning("Skipping %s: %s", entry.name, e)
                result.skipped.append(SkippedNote(path=Path(entry.name), error=e))
        return result

    def all_papers(self) -> list[LoadedPaper]:
        return self.scan().papers

    def list(self, paper_filter: PaperFilter | None = None, **criteria) -> list[LoadedPaper]:
        """Papers matching *paper_filter* (or a filter built from *criteria*)."""
        if paper_filter is None:
            paper_filter = PaperFilter(**criteria)
        return paper_filter.apply(self.all_papers())

    # -- writing -----------------------------------------------------------

    def write_paper(self, path: Path | str, meta: PaperMeta, notes: str) -> None:
        """Stamp ``modified_at`` and overwrite the note at *path*."""
        meta.normalize()
        meta.modified_at = now_naive()
        full = self.resolve(path)
        full.write_text(render_note(meta, notes), encoding="utf-8")
        logger.debug("Wrote %s", full)

    def add(
        self,
        title: str,
        file: Path | str | None = None,
        url: str | None = None,
        authors: Iterable[str] = (),
        tags: Iterable[str] = (),
        labels: dict[str, Primitive] | None = None,
        notes: str = "",
    ) -> PaperMeta:
        """Create a new paper and its note file.

        Raises:
            OutsideRoot: *file* is not under the root.
            InvalidTitle: *title* has no usable characters.
            AlreadyExists: A note already exists at the derived path.
        """
        filename = self.relative_document(file) if file is not None else None
        path = self._note_path(title)
        if self.resolve(path).exists():
            raise AlreadyExists(str(path))

        now = now_naive()
        meta = PaperMeta(
            title=title,
            url=url,
            filename=filename,
            tags=set(tags),
            labels=dict(labels or {}),
            authors=_dedup(authors),
            created_at=now,
            modified_at=now,
        )
        self.write_paper(path, meta, notes)
        logger.info("Added paper %r at %s", title, path)
        return meta

    def import_paper(self, meta: PaperMeta, notes: str = "") -> Path:
        """Write a complete *meta* (e.g. from an export) at its derived path.

        ``created_at`` is kept; an existing note at that path is overwritten.
        """
        self._check_filename(meta.filename)
        path = self._note_path(meta.title)
        self.write_paper(path, meta, notes)
        logger.info("Imported paper %r at %s", meta.title, path)
        return path

    def update(
        self,
        paper: LoadedPaper,
        file: Path | str | None = None,
        *,
        url=UNSET,
        title: str | None = None,
    ) -> LoadedPaper:
        """Repoint the document and/or change url/title of *paper*.

        The note is re-read from ``paper.path`` first so that edits made to
        the notes body since *paper* was loaded are kept.
        """
        filename = self.relative_document(file) if file is not None else None
        current = self.get_paper(paper.path)
        meta = current.meta
        if filename is not None:
            meta.filename = filename
        if url is not UNSET:
            meta.url = url or None

        path = current.path
        if title is not None and title != meta.title:
            new_path = self._note_path(title)
            if new_path != path and self.resolve(new_path).exists():
                raise AlreadyExists(str(new_path))
            meta.title = title
            self.write_paper(new_path, meta, current.notes)
            if new_path != path:
                self.resolve(path).unlink()
                logger.info("Moved note %s -> %s", path, new_path)
            path = new_path
        else:
            self.write_paper(path, meta, current.notes)
        return LoadedPaper(path=path, meta=meta, notes=current.notes)

    def update_notes(self, paper: LoadedPaper, notes: str) -> LoadedPaper:
        current = self.get_paper(paper.path)
        self.write_paper(current.path, current.meta, notes)
        current.notes = notes
        return current

    def _modify(self, paper: LoadedPaper, change) -> LoadedPaper:
        current = self.get_paper(paper.path)
        change(current.meta)
        self.write_paper(current.path, current.meta, current.notes)
        return current

    def add_authors(self, paper: LoadedPaper, authors: Iterable[str]) -> LoadedPaper:
        def change(meta: PaperMeta) -> None:
            meta.authors = _dedup([*meta.authors, *authors])

        return self._modify(paper, change)

    def remove_authors(self, paper: LoadedPaper, authors: Iterable[str]) -> LoadedPaper:
        drop = {a.strip() for a in authors}

        def change(meta: PaperMeta) -> None:
            meta.authors = [a for a in meta.authors if a not in drop]

        return self._modify(paper, change)

    def add_tags(self, paper: LoadedPaper, tags: Iterable[str]) -> LoadedPaper:
        def change(meta: PaperMeta) -> None:
            meta.tags |= {t.strip() for t in tags if t.strip()}

        return self._modify(paper, change)

    def remove_tags(self, paper: LoadedPaper, tags: Iterable[str]) -> LoadedPaper:
        def change(meta: PaperMeta) -> None:
            meta.tags -= {t.strip() for t in tags}

        return self._modify(paper, change)

    def add_labels(self, paper: LoadedPaper, labels: dict[str, Primitive]) -> LoadedPaper:
        def change(meta: PaperMeta) -> None:
            meta.labels.update(labels)

        return self._modify(paper, change)

    def remove_labels(self, paper: LoadedPaper, keys: Iterable[str]) -> LoadedPaper:
        def change(meta: PaperMeta) -> None:
            for key in keys:
                meta.labels.pop(key, None)

        return self._modify(paper, change)

    def record_review(self, paper: LoadedPaper, now: datetime | None = None) -> LoadedPaper:
        """Advance the review schedule of *paper* and persist it."""
        return self._modify(paper, lambda meta: update_review(meta, now))

    def remove(self, paper: LoadedPaper, with_file: bool = False) -> bool:
        """Delete the note of *paper*; optionally its document too.

        The document is kept if another paper still references it.
        Returns True if the document was deleted.
        """
        self.resolve(paper.path).unlink()
        logger.info("Removed paper %r (%s)", paper.meta.title, paper.path)
        filename = paper.meta.filename
        if not with_file or filename is None:
            return False

        users = [p.path for p in self.all_papers() if p.meta.filename == filename]
        if users:
            logger.warning(
                "Not removing %s, it is used by other papers: %s",
                filename,
                ", ".join(str(u) for u in users),
            )
            return False
        doc = self.resolve(filename)
        if not doc.is_file():
            return False
        doc.unlink()
        logger.info("Removed file %s", filename)
        return True

    def move(self, source: Path | str, dest: Path | str) -> None:
        """Rename a file inside the repo, refusing to overwrite."""
        src, dst = self.resolve(source), self.resolve(dest)
        if dst.exists():
            raise AlreadyExists(str(dest))
        dst.parent.mkdir(parents=True, exist_ok=True)
        os.rename(src, dst)
        logger.info("Moved %s -> %s", source, dest)


def _dedup(items: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for item in items:
        item = item.strip()
        if item and item not in seen:
            seen.append(item)
    return seen
