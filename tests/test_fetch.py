"""Tests for papers.fetch.

All tests mock httpx and time.sleep to avoid real HTTP and delays.
"""

from unittest.mock import MagicMock, patch

import httpx as httpx_mod
import pytest

from papers.errors import FetchError
from papers.fetch import fetch, filename_from_url, get_with_retry


def _resp(status=200, headers=None, content=b""):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.content = content
    return resp


class TestGetWithRetry:
    @patch("papers.fetch.time.sleep")
    @patch("papers.fetch.httpx.get")
    def test_success_no_retry(self, mock_get, mock_sleep):
        mock_get.return_value = _resp(200)
        assert get_with_retry("https://example.com").status_code == 200
        assert mock_get.call_count == 1
        mock_sleep.assert_not_called()

    @patch("papers.fetch.time.sleep")
    @patch("papers.fetch.httpx.get")
    def test_429_retries_then_succeeds(self, mock_get, mock_sleep):
        mock_get.side_effect = [_resp(429), _resp(429), _resp(200)]
        assert get_with_retry("https://example.com").status_code == 200
        assert mock_get.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    @patch("papers.fetch.time.sleep")
    @patch("papers.fetch.httpx.get")
    def test_retry_after_respected(self, mock_get, mock_sleep):
        mock_get.side_effect = [_resp(503, {"retry-after": "7"}), _resp(200)]
        get_with_retry("https://example.com")
        mock_sleep.assert_called_once_with(7.0)

    @patch("papers.fetch.time.sleep")
    @patch("papers.fetch.httpx.get")
    def test_gives_up_after_max_retries(self, mock_get, mock_sleep):
        mock_get.return_value = _resp(500)
        result = get_with_retry("https://example.com", max_retries=2)
        assert result.status_code == 500
        assert mock_get.call_count == 3

    @patch("papers.fetch.time.sleep")
    @patch("papers.fetch.httpx.get")
    def test_404_not_retried(self, mock_get, mock_sleep):
        mock_get.return_value = _resp(404)
        assert get_with_retry("https://example.com").status_code == 404
        assert mock_get.call_count == 1

    @patch("papers.fetch.time.sleep")
    @patch("papers.fetch.httpx.get")
    def test_connect_error_reraised(self, mock_get, mock_sleep):
        mock_get.side_effect = httpx_mod.ConnectError("refused")
        with pytest.raises(httpx_mod.ConnectError):
            get_with_retry("https://example.com", max_retries=1)
        assert mock_get.call_count == 2

    @patch("papers.fetch.httpx.get")
    def test_defaults_passed(self, mock_get):
        mock_get.return_value = _resp(200)
        get_with_retry("https://example.com", headers={"a": "b"})
        kwargs = mock_get.call_args.kwargs
        assert kwargs["follow_redirects"] is True
        assert kwargs["timeout"] == 30.0
        assert kwargs["headers"] == {"a": "b"}


class TestFilenameFromUrl:
    def test_last_segment(self):
        assert filename_from_url("https://arxiv.org/pdf/1706.03762.pdf") == "1706.03762.pdf"

    def test_unquoted(self):
        assert filename_from_url("https://example.com/a/My%20Paper.pdf?dl=1") == "My Paper.pdf"

    def test_no_name(self):
        with pytest.raises(FetchError):
            filename_from_url("https://example.com/")


class TestFetch:
    @patch("papers.fetch.time.sleep")
    @patch("papers.fetch.httpx.get")
    def test_writes_content(self, mock_get, mock_sleep, tmp_path):
        mock_get.return_value = _resp(200, {"content-type": "application/pdf"}, b"%PDF-1.7 data")
        dest = fetch("https://example.com/x.pdf", tmp_path / "x.pdf")
        assert dest.read_bytes() == b"%PDF-1.7 data"
        assert mock_get.call_args.kwargs["headers"]["user-agent"].startswith("papers/")

    @patch("papers.fetch.httpx.get")
    def test_existing_dest_refused(self, mock_get, tmp_path):
        dest = tmp_path / "x.pdf"
        dest.write_bytes(b"old")
        with pytest.raises(FileExistsError):
            fetch("https://example.com/x.pdf", dest)
        mock_get.assert_not_called()
        assert dest.read_bytes() == b"old"

    @patch("papers.fetch.time.sleep")
    @patch("papers.fetch.httpx.get")
    def test_http_error(self, mock_get, mock_sleep, tmp_path):
        mock_get.return_value = _resp(403)
        with pytest.raises(FetchError, match="HTTP 403"):
            fetch("https://example.com/x.pdf", tmp_path / "x.pdf")
        assert not (tmp_path / "x.pdf").exists()

    @patch("papers.fetch.time.sleep")
    @patch("papers.fetch.httpx.get")
    def test_connection_failure(self, mock_get, mock_sleep, tmp_path):
        mock_get.side_effect = httpx_mod.ConnectError("refused")
        with pytest.raises(FetchError):
            fetch("https://example.com/x.pdf", tmp_path / "x.pdf")

    @patch("papers.fetch.time.sleep")
    @patch("papers.fetch.httpx.get")
    def test_non_pdf_saved_with_warning(self, mock_get, mock_sleep, tmp_path, caplog):
        mock_get.return_value = _resp(200, {"content-type": "text/html"}, b"<html>")
        with caplog.at_level("WARNING", logger="papers.fetch"):
            fetch("https://example.com/x.pdf", tmp_path / "x.pdf")
        assert (tmp_path / "x.pdf").read_bytes() == b"<html>"
        assert "not a pdf" in caplog.text
