"""Document sniffing with PyMuPDF (fitz).

Reads title and author from PDF metadata, and detects a document's real
type from its content. Everything here is best-effort: unreadable files
give empty results, never exceptions.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

# fitz metadata "format" prefix -> file extension
_FORMAT_EXTENSIONS = {
    "pdf": "pdf",
    "epub": "epub",
    "xps": "xps",
    "openxps": "oxps",
    "fictionbook": "fb2",
    "fb2": "fb2",
    "mobi": "mobi",
    "cbz": "cbz",
}

# Author names may contain letters, digits, whitespace and full stops
# (e.g. "First M. Last"); anything else separates two names.
_AUTHOR_SPLIT_RE = re.compile(r"[^\w\s.]|_")


def _metadata(path: Path) -> dict[str, str]:
    try:
        doc = fitz.open(str(path))
    except Exception as e:  # fitz raises several unrelated types
        logger.debug("Could not open %s as a document: %s", path, e)
        return {}
    try:
        if not doc.is_pdf:
            return {}
        return doc.metadata or {}
    finally:
        doc.close()


def extract_title(path: Path) -> str | None:
    """Title from the PDF info dictionary, or None."""
    title = (_metadata(path).get("title") or "").strip()
    if title:
        logger.debug("Found title %r in %s", title, path)
        return title
    logger.warning("Couldn't find a title in pdf metadata for %s", path)
    return None


def split_authors(text: str) -> list[str]:
    """Split a metadata author string into names, de-duplicated in order."""
    names: list[str] = []
    for part in _AUTHOR_SPLIT_RE.split(text):
        name = part.strip()
        if name and name not in names:
            names.append(name)
    return names


def extract_authors(path: Path) -> list[str]:
    """Authors from the PDF info dictionary; empty when absent."""
    raw = (_metadata(path).get("author") or "").strip()
    if raw:
        authors = split_authors(raw)
        if authors:
            logger.debug("Found authors %s in %s", authors, path)
            return authors
    logger.warning("Couldn't find authors in pdf metadata for %s", path)
    return []


def detect_extension(path: Path) -> str | None:
    """Extension matching the document's content, e.g. ``"pdf"``.

    Returns None when the content is not a recognised document type.
    """
    try:
        doc = fitz.open(str(path))
    except Exception as e:  # fitz raises several unrelated types
        logger.debug("Could not sniff %s: %s", path, e)
        return None
    try:
        if doc.is_pdf:
            return "pdf"
        fmt = (doc.metadata or {}).get("format") or ""
    finally:
        doc.close()
    words = fmt.lower().split()
    return _FORMAT_EXTENSIONS.get(words[0]) if words else None
