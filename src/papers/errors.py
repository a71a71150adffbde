"""Exception hierarchy for papers.

Every error message includes: what happened, why, and what to do next.
Filesystem failures are not wrapped; ``OSError`` propagates as-is.
"""

from __future__ import annotations


class PapersError(Exception):
    """Base class for all papers errors."""


class OutsideRoot(PapersError):
    """A document path resolves outside the repository root."""

    def __init__(self, path: str, root: str):
        super().__init__(
            f"File '{path}' does not live in the repository root {root}. "
            f"Move the file somewhere under the root and try again."
        )
        self.path = path
        self.root = root


class AlreadyExists(PapersError):
    """A note file already exists at the derived path."""

    def __init__(self, path: str):
        super().__init__(
            f"Paper entry already exists at '{path}'. "
            f"Choose a different title, or update the existing paper instead."
        )
        self.path = path


class PaperNotFound(PapersError):
    """No note file at the requested path."""

    def __init__(self, path: str):
        super().__init__(
            f"No paper note at '{path}'. "
            f"Use 'papers list' to see the papers in this repository."
        )
        self.path = path


class InvalidTitle(PapersError):
    """Title is empty once prohibited path characters are removed."""

    def __init__(self, title: str):
        super().__init__(
            f"Title '{title}' is empty after removing characters that are not "
            f"allowed in file names. Provide a title with some letters or digits."
        )
        self.title = title


class InvalidLabel(PapersError, ValueError):
    """Label text is not of the form ``key=value``."""

    def __init__(self, text: str, reason: str):
        super().__init__(f"Invalid label '{text}': {reason}. Labels take the form key=value.")
        self.text = text
        self.reason = reason


class NoteError(PapersError):
    """A note file could not be parsed."""

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path


class NoFrontMatter(NoteError):
    """The note file has no ``---`` delimited front matter block."""

    def __init__(self, path: str):
        super().__init__(
            path,
            f"No front matter found in '{path}'. "
            f"Note files must start with a '---' line, the YAML metadata, "
            f"and a closing '---' line.",
        )


class MalformedFrontMatter(NoteError):
    """The front matter exists but is not valid paper metadata."""

    def __init__(self, path: str, detail: str):
        super().__init__(
            path,
            f"Malformed front matter in '{path}': {detail}. "
            f"Fix the metadata block by hand; the file was not modified.",
        )
        self.detail = detail


class RenameError(PapersError):
    """A rename strategy could not produce a name for a paper."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class FetchError(PapersError):
    """A document could not be downloaded."""

    def __init__(self, url: str, detail: str):
        super().__init__(
            f"Failed to fetch '{url}': {detail}. "
            f"Check the URL, or download the file manually and add it by path."
        )
        self.url = url
        self.detail = detail


class ConfigError(PapersError):
    """Configuration is missing or invalid."""

    def __init__(self, detail: str, hint: str = ""):
        msg = f"Configuration error: {detail}."
        if hint:
            msg += f" {hint}"
        super().__init__(msg)
        self.detail = detail
        self.hint = hint
