"""Downloading documents from URLs.

The repository itself never touches the network; the CLI fetches a
document into the repo root and then adds it by path.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from papers import __version__
from papers.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE = 1.0  # seconds

USER_AGENT = f"papers/{__version__}"


def _retryable(resp: httpx.Response) -> bool:
    return resp.status_code == 429 or resp.status_code >= 500


def _delay(attempt: int, backoff_base: float, resp: httpx.Response | None = None) -> float:
    """Seconds to wait before retry number *attempt* (0-based).

    A numeric Retry-After header can only lengthen the wait.
    """
    delay = backoff_base * 2**attempt
    if resp is not None:
        header = resp.headers.get("retry-after", "")
        if header.isdigit():
            delay = max(delay, float(header))
    return delay


def get_with_retry(
    url: str,
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    backoff_base: float = DEFAULT_BACKOFF_BASE,
    **kwargs,
) -> httpx.Response:
    """GET *url*, retrying rate limits, server errors and dropped connections.

    Waits ``backoff_base * 2**attempt`` seconds between tries. Extra
    keyword arguments go to :func:`httpx.get`; redirects are followed
    unless told otherwise.

    Returns the last response, which is still an error response when
    every retry failed. Connection errors and timeouts are re-raised once
    the retries are used up.
    """
    kwargs.setdefault("timeout", DEFAULT_TIMEOUT)
    kwargs.setdefault("follow_redirects", True)

    attempt = 0
    while True:
        try:
            resp = httpx.get(url, **kwargs)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            if attempt >= max_retries:
                raise
            logger.debug("GET %s failed (%s), retrying", url, e)
            time.sleep(_delay(attempt, backoff_base))
        else:
            if not _retryable(resp) or attempt >= max_retries:
                return resp
            logger.debug("GET %s returned %d, retrying", url, resp.status_code)
            time.sleep(_delay(attempt, backoff_base, resp))
        attempt += 1


def filename_from_url(url: str) -> str:
    """Last path segment of *url*, e.g. ``2101.00001.pdf``.

    Raises:
        FetchError: The URL has no file name component.
    """
    name = unquote(urlparse(url).path.rstrip("/").rsplit("/", 1)[-1])
    if not name:
        raise FetchError(url, "the URL has no file name to save to")
    return name


def fetch(url: str, dest: Path) -> Path:
    """Download *url* into *dest*.

    A non-PDF content type is logged but still saved; some hosts serve an
    HTML login page instead of the document.

    Raises:
        FetchError: HTTP error status or connection failure.
        FileExistsError: *dest* already exists.
    """
    if dest.exists():
        raise FileExistsError(f"Path already exists, try moving it: {dest}")
    logger.info("Fetching %s", url)
    try:
        resp = get_with_retry(url, headers={"user-agent": USER_AGENT})
    except (httpx.ConnectError, httpx.TimeoutException) as e:
        raise FetchError(url, str(e) or type(e).__name__) from e
    if resp.status_code != 200:
        raise FetchError(url, f"HTTP {resp.status_code}")

    content_type = resp.headers.get("content-type", "")
    if "pdf" not in content_type and "octet-stream" not in content_type:
        logger.warning(
            "File fetched from %s was not a pdf (%s), perhaps it needs authorisation?",
            url,
            content_type or "no content type",
        )
    dest.write_bytes(resp.content)
    logger.info("Fetched %s to %s", url, dest)
    return dest
