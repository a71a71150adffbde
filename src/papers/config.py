"""User configuration — loads and validates ~/.papers/config.yaml.

The config picks the default repository, a template for the notes body of
new papers, and tags/labels applied to every added paper.

If no config exists, defaults are used; create_default() writes a
commented starter file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from papers.errors import ConfigError
from papers.paper import Primitive, parse_label
from papers.paths import config_file, default_repo

CONFIG_ENV = "PAPERS_CONFIG"
REPO_ENV = "PAPERS_REPO"


@dataclass
class PaperDefaults:
    """Values merged into every newly added paper."""

    tags: set[str] = field(default_factory=set)
    labels: dict[str, Primitive] = field(default_factory=dict)


@dataclass
class PapersConfig:
    """Parsed config.yaml."""

    default_repo: Path = field(default_factory=default_repo)
    notes_template: str = ""
    notes_template_file: Path | None = None
    paper_defaults: PaperDefaults = field(default_factory=PaperDefaults)
    source: Path | None = None

    def repo_dir(self, override: Path | str | None = None) -> Path:
        """Repository to use: *override*, then $PAPERS_REPO, then default_repo."""
        if override:
            return Path(override).expanduser()
        env = os.environ.get(REPO_ENV)
        if env:
            return Path(env).expanduser()
        return self.default_repo

    def notes_for_new_paper(self, repo_root: Path) -> str:
        """Initial notes body; a relative template file is read from the repo."""
        if self.notes_template_file is None:
            return self.notes_template
        p = self.notes_template_file
        if not p.is_absolute():
            p = repo_root / p
        try:
            return p.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(
                f"Cannot read notes template {p}: {e}",
                hint="Fix notes_template.file in config.yaml or remove it.",
            ) from e


_DEFAULT_CONFIG = """\
# papers configuration

# Library used when no --repo is given and $PAPERS_REPO is unset.
# default_repo: ~/papers

# Initial notes body for new papers: inline content, or a file
# (relative paths are resolved against the repository root).
# notes_template:
#   content: |
#     ## Summary
#
#     ## Notes
# notes_template:
#   file: template.md

# Tags and labels added to every new paper. Labels are key=value.
paper_defaults:
  tags: []
  labels: []
"""


def config_path(override: Path | str | None = None) -> Path:
    """Config file to use: *override*, then $PAPERS_CONFIG, then ~/.papers/config.yaml."""
    if override:
        return Path(override).expanduser()
    env = os.environ.get(CONFIG_ENV)
    if env:
        return Path(env).expanduser()
    return config_file()


def create_default(path: Path) -> Path:
    """Write a starter config.yaml if it doesn't exist. Returns the path."""
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_DEFAULT_CONFIG, encoding="utf-8")
    return path


def _parse_labels(raw: object) -> dict[str, Primitive]:
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return {
            str(k): v if v is None or isinstance(v, (str, bool, int, float)) else str(v)
            for k, v in raw.items()
        }
    if isinstance(raw, list):
        try:
            return dict(parse_label(str(item)) for item in raw)
        except ValueError as e:
            raise ConfigError(str(e)) from e
    raise ConfigError(f"paper_defaults.labels must be a list or mapping, got {type(raw).__name__}")


def load_config(path: Path | None = None) -> PapersConfig:
    """Load and validate config.yaml. Returns defaults if the file is missing."""
    p = path or config_path()
    if not p.exists():
        return PapersConfig()

    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {p}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {p}, got {type(data).__name__}")

    cfg = PapersConfig(source=p)
    if data.get("default_repo"):
        cfg.default_repo = Path(str(data["default_repo"])).expanduser()

    template = data.get("notes_template")
    if isinstance(template, str):
        cfg.notes_template = template
    elif isinstance(template, dict):
        if "file" in template:
            cfg.notes_template_file = Path(str(template["file"])).expanduser()
        else:
            cfg.notes_template = str(template.get("content") or "")
    elif template is not None:
        raise ConfigError(
            f"notes_template must be a string or mapping in {p}",
            hint="Use 'notes_template: {content: ...}' or 'notes_template: {file: path}'.",
        )

    defaults = data.get("paper_defaults") or {}
    if not isinstance(defaults, dict):
        raise ConfigError(f"paper_defaults must be a mapping in {p}")
    tags = defaults.get("tags") or []
    if not isinstance(tags, list):
        raise ConfigError(f"paper_defaults.tags must be a list in {p}")
    cfg.paper_defaults = PaperDefaults(
        tags={str(t).strip() for t in tags if str(t).strip()},
        labels=_parse_labels(defaults.get("labels")),
    )
    return cfg
