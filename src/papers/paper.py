"""Paper metadata and the note file format.

A note file is YAML front matter followed by free-form notes::

    ---
    title: Attention Is All You Need
    url: null
    filename: attention.pdf
    tags:
    - transformers
    labels:
      read: true
    authors:
    - Ashish Vaswani
    created_at: 2024-01-05 10:12:00
    modified_at: 2024-01-05 10:12:00
    last_review: null
    next_review: null

    ---
    Notes go here.

Timestamps are naive UTC with second resolution.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any, Union

import yaml

from papers.errors import InvalidLabel, MalformedFrontMatter, NoFrontMatter

Primitive = Union[str, bool, int, float, None]

# Key order in the front matter block
FIELD_ORDER = (
    "title",
    "url",
    "filename",
    "tags",
    "labels",
    "authors",
    "created_at",
    "modified_at",
    "last_review",
    "next_review",
)

_TIMESTAMP_FIELDS = ("created_at", "modified_at", "last_review", "next_review")

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\n(.*?)^---[ \t]*$\n?", re.DOTALL | re.MULTILINE)


def now_naive() -> datetime:
    """Current UTC time, naive, truncated to whole seconds."""
    return datetime.now(UTC).replace(tzinfo=None, microsecond=0)


@dataclass
class PaperMeta:
    """Editable metadata for one paper."""

    title: str
    url: str | None = None
    filename: str | None = None
    tags: set[str] = field(default_factory=set)
    labels: dict[str, Primitive] = field(default_factory=dict)
    authors: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=now_naive)
    modified_at: datetime = field(default_factory=now_naive)
    last_review: datetime | None = None
    next_review: datetime | None = None

    def __post_init__(self) -> None:
        self.normalize()

    def normalize(self) -> None:
        """Trim tags and authors, drop empty and duplicate ones, check label keys.

        Raises:
            InvalidLabel: A label key is empty or contains '='.
        """
        self.tags = {t.strip() for t in self.tags if t.strip()}
        self.authors = list(dict.fromkeys(a.strip() for a in self.authors if a.strip()))
        for key in self.labels:
            check_label_key(key)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict in front matter key order; tags sorted."""
        return {
            "title": self.title,
            "url": self.url,
            "filename": self.filename,
            "tags": sorted(self.tags),
            "labels": dict(self.labels),
            "authors": list(self.authors),
            "created_at": self.created_at,
            "modified_at": self.modified_at,
            "last_review": self.last_review,
            "next_review": self.next_review,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaperMeta:
        """Build from a front matter or export mapping.

        Unknown keys are ignored. Raises ValueError/TypeError on bad values.
        """
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValueError("missing or empty 'title'")

        tags = data.get("tags") or []
        if not isinstance(tags, list):
            raise TypeError(f"'tags' must be a list, got {type(tags).__name__}")
        labels = data.get("labels") or {}
        if not isinstance(labels, dict):
            raise TypeError(f"'labels' must be a mapping, got {type(labels).__name__}")
        authors = data.get("authors") or []
        if not isinstance(authors, list):
            raise TypeError(f"'authors' must be a list, got {type(authors).__name__}")

        stamps = {name: _to_datetime(data.get(name), name) for name in _TIMESTAMP_FIELDS}
        now = now_naive()
        return cls(
            title=title,
            url=_optional_str(data.get("url")),
            filename=_optional_str(data.get("filename")),
            tags={str(t) for t in tags},
            labels={str(k): _to_primitive(v) for k, v in labels.items()},
            authors=[str(a) for a in authors],
            created_at=stamps["created_at"] or now,
            modified_at=stamps["modified_at"] or stamps["created_at"] or now,
            last_review=stamps["last_review"],
            next_review=stamps["next_review"],
        )

    def to_json_dict(self) -> dict[str, Any]:
        """Export form: timestamps as ISO 8601 strings."""
        data = self.to_dict()
        for name in _TIMESTAMP_FIELDS:
            value = data[name]
            data[name] = value.isoformat() if value is not None else None
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_json_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, data: str | dict) -> PaperMeta:
        if isinstance(data, str):
            data = json.loads(data)
        return cls.from_dict(data)


@dataclass
class LoadedPaper:
    """A paper as read from disk.

    ``path`` is where the note actually lives, relative to the repo root.
    It can differ from ``get_path(meta)`` until reconciled.
    """

    path: Path
    meta: PaperMeta
    notes: str = ""


# ---------------------------------------------------------------------------
# Note file (de)serialization
# ---------------------------------------------------------------------------


def render_note(meta: PaperMeta, notes: str) -> str:
    """Serialize *meta* and *notes* into note file text."""
    data = yaml.safe_dump(
        meta.to_dict(),
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
    )
    return f"---\n{data}\n---\n{notes}"


def parse_note(text: str, path: str = "<string>") -> tuple[PaperMeta, str]:
    """Split note file text into (meta, notes).

    Raises:
        NoFrontMatter: No front matter block, or an empty one.
        MalformedFrontMatter: The block is not valid paper metadata.
    """
    m = _FRONT_MATTER_RE.match(text)
    if not m:
        raise NoFrontMatter(path)
    front, body = m.group(1), text[m.end() :]

    try:
        data = yaml.safe_load(front)
    except (yaml.YAMLError, ValueError, TypeError) as e:
        # PyYAML raises plain ValueError for impossible dates like 2024-13-45
        raise MalformedFrontMatter(path, f"invalid YAML ({e})") from e
    if data is None:
        raise NoFrontMatter(path)
    if not isinstance(data, dict):
        raise MalformedFrontMatter(path, f"expected a mapping, got {type(data).__name__}")

    try:
        meta = PaperMeta.from_dict(data)
    except (TypeError, ValueError) as e:
        raise MalformedFrontMatter(path, str(e)) from e
    return meta, body


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


def check_label_key(key: str) -> None:
    """Raise InvalidLabel unless *key* can be written as ``key=value``."""
    if not key.strip():
        raise InvalidLabel(key, "empty key")
    if "=" in key:
        raise InvalidLabel(key, "key contains '='")


def parse_label(text: str) -> tuple[str, Primitive]:
    """Parse ``key=value`` into a (key, primitive) pair.

    The value is read as a YAML scalar, so ``read=true`` gives ``True``
    and ``year=2017`` gives ``2017``.

    >>> parse_label("year=2017")
    ('year', 2017)
    """
    parts = text.split("=")
    if len(parts) == 1:
        raise InvalidLabel(text, "missing value")
    if len(parts) > 2:
        raise InvalidLabel(text, "too many '='")
    key, raw = parts[0].strip(), parts[1].strip()
    if not key:
        raise InvalidLabel(text, "empty key")
    try:
        value = yaml.safe_load(raw) if raw else None
    except yaml.YAMLError:
        value = raw
    return key, _to_primitive(value)


def format_label(key: str, value: Primitive) -> str:
    """Inverse of :func:`parse_label` for display."""
    if value is None:
        return f"{key}="
    if isinstance(value, bool):
        return f"{key}={str(value).lower()}"
    return f"{key}={value}"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value)
    return s or None


def _to_primitive(value: Any) -> Primitive:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _to_datetime(value: Any, name: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise ValueError(f"'{name}' is not a timestamp: {value!r}") from e
    else:
        raise TypeError(f"'{name}' must be a timestamp, got {type(value).__name__}")
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt.replace(microsecond=0)
