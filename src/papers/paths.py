"""Canonical paths for papers.

Two concerns live here:

* the per-user dot directory (config file, default library), and
* the note path derived from a paper's title.

Layout:
  ~/.papers/config.yaml   config_file()
  ~/.papers/library/      default_repo()
  <repo>/<title>.md       get_path(meta)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from papers.paper import PaperMeta

DOT_DIR = ".papers"
NOTE_SUFFIX = ".md"

# Unsafe on common filesystems, or would clash with the .md extension.
PROHIBITED_PATH_CHARS = frozenset('/\\?%*:|"<>.')


def home_dir() -> Path:
    """Return ~/.papers/."""
    return Path.home() / DOT_DIR


def config_file() -> Path:
    """Return the default config file location."""
    return home_dir() / "config.yaml"


def default_repo() -> Path:
    """Return the library directory used when no repo is configured."""
    return home_dir() / "library"


def strip_prohibited(text: str) -> str:
    """Remove every prohibited path character from *text*.

    >>> strip_prohibited("Other/Title:1")
    'OtherTitle1'
    """
    return "".join(c for c in text if c not in PROHIBITED_PATH_CHARS)


def get_path(meta: PaperMeta) -> Path:
    """Return the expected note path for *meta*, relative to the repo root.

    Pure and total: distinct titles can collapse to the same path, which
    the store rejects when a paper is created.
    """
    return Path(strip_prohibited(meta.title) + NOTE_SUFFIX)
