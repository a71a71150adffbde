"""Command line interface for papers.

Usage:
    # Add a local PDF (title/authors read from its metadata when not given)
    papers add paper.pdf --tag ml

    # Fetch a PDF into the repository and add it
    papers add https://arxiv.org/pdf/1706.03762 --title "Attention Is All You Need"

    # List papers with all of the given tags, as JSON
    papers list -t ml -t nlp -o json

    # Papers due for review; record a review
    papers review
    papers review "attention"

    # Open the document, or edit the notes next to it
    papers open "attention"
    papers notes --open "attention"

    # Realign file names with metadata
    papers rename-files title --dry-run
    papers doctor --fix

Papers are addressed by a query: an exact title or note path, or else the
best fuzzy match.
"""

from __future__ import annotations

import argparse
import json
import os
import subprocess
import sys
import webbrowser
from pathlib import Path

import yaml

from papers import log
from papers.config import PapersConfig, config_path, create_default, load_config
from papers.doctor import doctor
from papers.errors import PaperNotFound, PapersError
from papers.extract import extract_authors, extract_title
from papers.fetch import fetch, filename_from_url
from papers.filters import PaperFilter
from papers.fuzzy import select
from papers.paper import LoadedPaper, PaperMeta, format_label, parse_label, render_note
from papers.rename import Strategy, rename_files
from papers.repo import Repo
from papers.review import reviewable

logger = log.logger


def _load_repo(args: argparse.Namespace, config: PapersConfig) -> Repo:
    repo_dir = config.repo_dir(args.repo)
    logger.debug("Using repo %s", repo_dir)
    return Repo.load(repo_dir)


def _pick(repo: Repo, query: str) -> LoadedPaper:
    paper = select(repo.all_papers(), query)
    if paper is None:
        raise PaperNotFound(query)
    logger.debug("Query %r selected %s", query, paper.path)
    return paper


def _labels(items: list[str]) -> dict:
    return dict(parse_label(item) for item in items)


def _is_url(text: str) -> bool:
    return text.startswith(("http://", "https://"))


def _format_table(papers: list[LoadedPaper]) -> str:
    headers = ("title", "authors", "tags", "labels", "file")
    rows = [
        (
            p.meta.title,
            ", ".join(p.meta.authors),
            " ".join(sorted(p.meta.tags)),
            " ".join(format_label(k, v) for k, v in sorted(p.meta.labels.items())),
            p.meta.filename or "",
        )
        for p in papers
    ]
    widths = [max(len(str(r[i])) for r in [headers, *rows]) for i in range(len(headers))]
    lines = ["  ".join(h.ljust(w) for h, w in zip(headers, widths)).rstrip()]
    for row in rows:
        lines.append("  ".join(c.ljust(w) for c, w in zip(row, widths)).rstrip())
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_init(args: argparse.Namespace, config: PapersConfig) -> int:
    """Create a repository directory and a starter config."""
    directory = Path(args.dir).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    cfg = create_default(config_path(args.config))
    print(f"Initialised {directory.resolve()}")
    print(f"Config: {cfg}")
    return 0


def _add_one(
    repo: Repo,
    config: PapersConfig,
    args: argparse.Namespace,
    file: Path | None,
    url: str | None,
) -> PaperMeta:
    title = args.title
    authors = list(args.authors)
    if file is not None:
        if not file.is_file():
            raise FileNotFoundError(f"Path was not a file: {file}")
        if title is None:
            title = extract_title(file)
        if title is None:
            title = file.stem
            logger.info("Using file name %r as the title", title)
        if not authors:
            authors = extract_authors(file)
    if title is None:
        raise PapersError("A title is required when adding a paper without a file (--title).")

    defaults = config.paper_defaults
    labels = {**defaults.labels, **_labels(args.labels)}
    return repo.add(
        title,
        file=file,
        url=url,
        authors=authors,
        tags=defaults.tags | set(args.tags),
        labels=labels,
        notes=config.notes_for_new_paper(repo.root),
    )


def cmd_add(args: argparse.Namespace, config: PapersConfig) -> int:
    """Add papers from URLs or local files, or a bare entry with --title."""
    repo = _load_repo(args, config)
    if not args.url_or_path:
        meta = _add_one(repo, config, args, None, None)
        print(f"Added {meta.title}")
        return 0

    failed = 0
    for item in args.url_or_path:
        try:
            if _is_url(item):
                dest = repo.root / filename_from_url(item)
                fetch(item, dest)
                meta = _add_one(repo, config, args, dest, item)
            else:
                meta = _add_one(repo, config, args, Path(item), None)
        except (PapersError, OSError) as e:
            logger.warning("Failed to add %s: %s", item, e)
            print(f"Failed to add {item}: {e}", file=sys.stderr)
            failed += 1
            continue
        print(f"Added {meta.title}")
    return 1 if failed else 0


def cmd_update(args: argparse.Namespace, config: PapersConfig) -> int:
    """Update the file, url or title of a paper."""
    repo = _load_repo(args, config)
    paper = _pick(repo, args.query)
    kwargs = {}
    if args.url is not None:
        kwargs["url"] = args.url
    if args.title is not None:
        kwargs["title"] = args.title
    updated = repo.update(paper, args.file, **kwargs)
    print(f"Updated {updated.path}")
    return 0


def cmd_remove(args: argparse.Namespace, config: PapersConfig) -> int:
    """Remove papers, optionally with their document files."""
    repo = _load_repo(args, config)
    for query in args.queries:
        try:
            paper = _pick(repo, query)
        except PaperNotFound:
            print(f"No paper matching {query!r} to remove")
            continue
        removed_file = repo.remove(paper, with_file=args.with_file)
        suffix = f" and {paper.meta.filename}" if removed_file else ""
        print(f"Removed {paper.path}{suffix}")
    return 0


def cmd_values(args: argparse.Namespace, config: PapersConfig) -> int:
    """Add or remove authors, tags or labels on a paper."""
    repo = _load_repo(args, config)
    paper = _pick(repo, args.query)
    values = args.values
    if args.group == "authors":
        op = repo.add_authors if args.action == "add" else repo.remove_authors
    elif args.group == "tags":
        op = repo.add_tags if args.action == "add" else repo.remove_tags
    elif args.action == "add":
        op, values = repo.add_labels, _labels(values)
    else:
        op = repo.remove_labels
    op(paper, values)
    print(f"Updated {args.group} of {paper.path}")
    return 0


def _filter_from_args(args: argparse.Namespace) -> PaperFilter:
    return PaperFilter(
        file=args.file,
        title=args.title,
        authors=list(args.authors),
        tags=list(args.tags),
        labels=_labels(args.labels),
    )


def cmd_list(args: argparse.Namespace, config: PapersConfig) -> int:
    """List papers, filtered."""
    repo = _load_repo(args, config)
    papers = repo.list(_filter_from_args(args))
    if args.output == "json":
        print(json.dumps([p.meta.to_json_dict() for p in papers], indent=2, ensure_ascii=False))
    elif args.output == "yaml":
        data = [p.meta.to_dict() for p in papers]
        print(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), end="")
    else:
        print(_format_table(papers))
    return 0


def cmd_show(args: argparse.Namespace, config: PapersConfig) -> int:
    """Print a paper's note file."""
    repo = _load_repo(args, config)
    paper = _pick(repo, args.query)
    print(render_note(paper.meta, paper.notes), end="")
    return 0


def _edit(path: Path) -> None:
    editor = os.environ.get("EDITOR", "vi")
    subprocess.run([editor, str(path)], check=False)


def _open_document(repo: Repo, paper: LoadedPaper) -> None:
    """Open the paper's document with the desktop's default viewer.

    Raises:
        FileNotFoundError: The note points at a file that is not there.
    """
    if paper.meta.filename is None:
        print("No file associated with that paper")
        return
    path = repo.resolve(paper.meta.filename)
    if not path.is_file():
        raise FileNotFoundError(f"Document not found: {paper.meta.filename}")
    logger.info("Opening %s", path)
    webbrowser.open(path.as_uri())


def cmd_open(args: argparse.Namespace, config: PapersConfig) -> int:
    """Open a paper's document."""
    repo = _load_repo(args, config)
    _open_document(repo, _pick(repo, args.query))
    return 0


def cmd_notes(args: argparse.Namespace, config: PapersConfig) -> int:
    """Edit a paper's note file in $EDITOR."""
    repo = _load_repo(args, config)
    paper = _pick(repo, args.query)
    if args.open:
        _open_document(repo, paper)
    path = repo.resolve(paper.path)
    _edit(path)
    # Surface a broken front matter now rather than at the next listing
    repo.get_paper(paper.path)
    return 0


def cmd_review(args: argparse.Namespace, config: PapersConfig) -> int:
    """List papers due for review, or record a review of one."""
    repo = _load_repo(args, config)
    if args.query is None:
        due = reviewable(repo.all_papers())
        if not due:
            print("Nothing to review")
            return 0
        print(_format_table(due))
        return 0

    paper = _pick(repo, args.query)
    reviewed = repo.record_review(paper)
    print(f"Reviewed {reviewed.meta.title}, next review {reviewed.meta.next_review}")
    return 0


def cmd_rename_files(args: argparse.Namespace, config: PapersConfig) -> int:
    """Rename document and note files to match paper metadata."""
    repo = _load_repo(args, config)
    strategies = [Strategy(s) for s in args.strategies]
    report = rename_files(repo, strategies, dry_run=args.dry_run)
    for action in report.actions:
        if action.status == "unchanged":
            continue
        line = f"{action.status:9} {action.kind:8} {action.source} -> {action.dest or ''}"
        if action.reason:
            line += f" ({action.reason})"
        print(line.rstrip())
    return 1 if report.failed else 0


def cmd_doctor(args: argparse.Namespace, config: PapersConfig) -> int:
    """Check notes, documents and file names for drift."""
    repo = _load_repo(args, config)
    report = doctor(repo, fix=args.fix)
    for m in report.mismatched:
        state = "fixed" if m.fixed else (m.reason or "mismatch")
        print(f"path      {m.actual} -> {m.expected} [{state}]")
    for d in report.missing_documents:
        state = f"now {d.fixed_to}" if d.fixed_to else "missing"
        print(f"document  {d.note}: {d.filename} [{state}]")
    for orphan in report.orphans:
        print(f"orphan    {orphan}")
    for path, error in report.unparseable:
        print(f"broken    {path}: {error}")
    if report.ok:
        print("No problems found")
    return 0 if report.ok else 1


def cmd_import(args: argparse.Namespace, config: PapersConfig) -> int:
    """Import papers from a JSON export (a list of paper metadata)."""
    if args.file == "-":
        records = json.load(sys.stdin)
    else:
        with open(args.file, encoding="utf-8") as f:
            records = json.load(f)
    if not isinstance(records, list):
        raise PapersError("Import data must be a JSON list of papers.")

    repo = _load_repo(args, config)
    failed = 0
    for i, record in enumerate(records):
        try:
            meta = PaperMeta.from_dict(record)
            path = repo.import_paper(meta)
        except (PapersError, OSError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Failed to import record %d: %s", i, e)
            print(f"Failed to import record {i}: {e}", file=sys.stderr)
            failed += 1
            continue
        print(f"Imported {path}")
    return 1 if failed else 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_metadata_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("-a", "--author", dest="authors", action="append", default=[])
    p.add_argument("-t", "--tag", dest="tags", action="append", default=[])
    p.add_argument(
        "-l", "--label", dest="labels", action="append", default=[], help="key=value"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="papers", description="A paper management program.")
    parser.add_argument("-c", "--config", type=Path, help="Config file path to load")
    parser.add_argument("--repo", type=Path, help="Repository directory to use")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init", help="Initialise a new paper repository")
    p.add_argument("dir", nargs="?", default=".")
    p.set_defaults(func=cmd_init)

    p = sub.add_parser("add", help="Add papers from URLs or local files")
    p.add_argument("url_or_path", nargs="*")
    p.add_argument("--title")
    _add_metadata_options(p)
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("update", help="Update metadata about an existing paper")
    p.add_argument("query")
    p.add_argument("-f", "--file", type=Path)
    p.add_argument("-u", "--url", help="Empty string clears the url")
    p.add_argument("--title")
    p.set_defaults(func=cmd_update)

    p = sub.add_parser("remove", help="Remove papers")
    p.add_argument("queries", nargs="+")
    p.add_argument("--with-file", action="store_true", help="Also remove the document file")
    p.set_defaults(func=cmd_remove)

    for group in ("authors", "tags", "labels"):
        g = sub.add_parser(group, help=f"Manage {group} of a paper")
        actions = g.add_subparsers(dest="action", required=True)
        for action in ("add", "remove"):
            a = actions.add_parser(action)
            a.add_argument("query")
            a.add_argument("values", nargs="+")
            a.set_defaults(func=cmd_values, group=group)

    p = sub.add_parser("list", help="List the papers in this repository")
    p.add_argument("-f", "--file", help="Filename contains this (case-insensitive)")
    p.add_argument("--title", help="Title contains this (case-insensitive)")
    _add_metadata_options(p)
    p.add_argument("-o", "--output", choices=("table", "json", "yaml"), default="table")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("show", help="Print a paper's note")
    p.add_argument("query")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("open", help="Open a paper's document")
    p.add_argument("query")
    p.set_defaults(func=cmd_open)

    p = sub.add_parser("notes", help="Edit a paper's notes in $EDITOR")
    p.add_argument("query")
    p.add_argument("--open", action="store_true", help="Also open the document")
    p.set_defaults(func=cmd_notes)

    p = sub.add_parser("review", help="Review papers that have been unseen too long")
    p.add_argument("query", nargs="?", help="Record a review of this paper")
    p.set_defaults(func=cmd_review)

    p = sub.add_parser("rename-files", help="Rename files to match their paper metadata")
    p.add_argument("strategies", nargs="+", choices=[s.value for s in Strategy])
    p.add_argument("--dry-run", action="store_true", help="Print but don't rename")
    p.set_defaults(func=cmd_rename_files)

    p = sub.add_parser("doctor", help="Check for drift between notes and files")
    p.add_argument("--fix", action="store_true", help="Move notes and repoint documents")
    p.set_defaults(func=cmd_doctor)

    p = sub.add_parser("import", help="Import papers from a JSON export ('-' for stdin)")
    p.add_argument("file")
    p.set_defaults(func=cmd_import)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    log.configure(args.verbose)
    try:
        config = load_config(config_path(args.config))
        return args.func(args, config)
    except (PapersError, OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
