"""Shared test fixtures for papers."""

import textwrap
from pathlib import Path

import fitz
import pytest

from papers.repo import Repo


@pytest.fixture
def repo(tmp_path: Path) -> Repo:
    """An empty repository in a temp directory."""
    root = tmp_path / "library"
    root.mkdir()
    return Repo.load(root)


def make_pdf(path: Path, title: str = "", author: str = "") -> Path:
    """Write a one-page PDF with the given info-dict metadata."""
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text(fitz.Point(72, 72), "Some test text.")
    doc.set_metadata({"title": title, "author": author})
    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture
def sample_pdf(repo: Repo) -> Path:
    """A PDF inside the repo with title and author metadata."""
    return make_pdf(
        repo.root / "download.pdf",
        title="Scaling quantum interference from molecules to cages",
        author="Yang Xu; Xuefeng Guo",
    )


def write_note(root: Path, name: str, title: str, filename: str | None = None) -> Path:
    """Write a hand-made note file, as a user editing by hand would."""
    file_line = f"filename: {filename}" if filename else "filename: null"
    content = textwrap.dedent(f"""\
        ---
        title: {title}
        url: null
        {file_line}
        tags: []
        labels: {{}}
        authors: []
        created_at: 2024-01-01 00:00:00
        modified_at: 2024-01-01 00:00:00
        last_review: null
        next_review: null
        ---
        hand written notes
    """)
    path = root / name
    path.write_text(content, encoding="utf-8")
    return path
