"""
Tests for remote media transfer
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from morning_alarm import transfer
from morning_alarm.errors import AssetTransferFailed
from morning_alarm.transfer import download_to_path


def _response(status=200, chunks=(b"abc", b"", b"def")):
    response = MagicMock()
    response.status_code = status
    response.iter_content.return_value = list(chunks)
    response.__enter__.return_value = response
    return response


class TestDownloadToPath:
    """Test download_to_path"""

    @patch('morning_alarm.transfer._http_session')
    def test_success_writes_chunks(self, mock_session, tmp_path):
        mock_session.return_value.get.return_value = _response()
        target = tmp_path / "out.mp3"

        status = download_to_path("https://cdn.example.com/a.mp3", target, timeout_s=5)

        assert status == 200
        assert target.read_bytes() == b"abcdef"
        _, kwargs = mock_session.return_value.get.call_args
        assert kwargs["stream"] is True
        assert kwargs["timeout"] == 5

    @patch('morning_alarm.transfer._http_session')
    def test_non_200_leaves_no_file(self, mock_session, tmp_path):
        mock_session.return_value.get.return_value = _response(status=404)
        target = tmp_path / "out.mp3"

        assert download_to_path("https://cdn.example.com/missing.mp3", target) == 404
        assert not target.exists()

    @patch('morning_alarm.transfer._http_session')
    def test_connection_error_without_retry(self, mock_session, tmp_path):
        mock_session.return_value.get.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(AssetTransferFailed) as exc_info:
            download_to_path("https://cdn.example.com/a.mp3", tmp_path / "out.mp3")

        assert exc_info.value.status_code is None
        assert mock_session.return_value.get.call_count == 1

    @patch('morning_alarm.transfer._http_session')
    def test_connection_error_retried_when_configured(self, mock_session, tmp_path):
        mock_session.return_value.get.side_effect = [
            requests.exceptions.ConnectionError("reset"),
            _response(),
        ]
        target = tmp_path / "out.mp3"

        assert download_to_path("https://cdn.example.com/a.mp3", target, attempts=2) == 200
        assert mock_session.return_value.get.call_count == 2
        assert target.exists()

    @patch('morning_alarm.transfer.time')
    @patch('morning_alarm.transfer._http_session')
    def test_deadline_exceeded_discards_partial_file(self, mock_session, mock_time, tmp_path):
        mock_time.monotonic.side_effect = [0.0, 100.0]
        mock_session.return_value.get.return_value = _response(chunks=(b"partial", b"more"))
        target = tmp_path / "out.mp3"

        with pytest.raises(AssetTransferFailed) as exc_info:
            download_to_path("https://cdn.example.com/slow.mp3", target, timeout_s=30)

        assert "timed out" in str(exc_info.value)
        assert not target.exists()

    @patch('morning_alarm.transfer._http_session')
    def test_invalid_url(self, mock_session, tmp_path):
        mock_session.return_value.get.side_effect = requests.exceptions.InvalidURL("bad url")

        with pytest.raises(AssetTransferFailed):
            download_to_path("http://", tmp_path / "out.mp3")


class TestHttpSession:
    """Test the shared HTTP session"""

    def test_session_is_shared(self, monkeypatch):
        monkeypatch.setattr(transfer, "_SESSION", None)
        assert transfer._http_session() is transfer._http_session()

    def test_urllib3_retries_disabled(self, monkeypatch):
        monkeypatch.setattr(transfer, "_SESSION", None)
        adapter = transfer._http_session().get_adapter("https://cdn.example.com/a.mp3")
        assert adapter.max_retries.total == 0
