"""
HTTP transfer of remote media to a local path
"""

import logging
import threading
import time
from pathlib import Path
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type
from urllib3.util.retry import Retry

from .errors import AssetTransferFailed

logger = logging.getLogger(__name__)

_SESSION: Optional[requests.Session] = None
_SESSION_LOCK = threading.Lock()


def _http_session() -> requests.Session:
    global _SESSION
    if _SESSION is None:
        with _SESSION_LOCK:
            if _SESSION is None:
                session = requests.Session()
                # Retries are owned by download_to_path (transfer_attempts), not urllib3
                adapter = HTTPAdapter(pool_connections=4, pool_maxsize=4, max_retries=Retry(total=0, raise_on_status=False))
                session.mount("http://", adapter)
                session.mount("https://", adapter)
                session.headers.update({"User-Agent": "MorningAlarm-Media/1.0"})
                _SESSION = session
    return _SESSION


def _stream_to_file(url: str, target: Path, timeout_s: float, chunk_size: int) -> int:
    session = _http_session()
    deadline = time.monotonic() + timeout_s

    logger.debug(f"GET {url} -> {target}")
    with session.get(url, stream=True, timeout=timeout_s) as response:
        if response.status_code != 200:
            logger.warning(f"Transfer of {url} returned status {response.status_code}")
            return response.status_code

        with open(target, "wb") as f:
            for chunk in response.iter_content(chunk_size=chunk_size):
                if time.monotonic() > deadline:
                    raise requests.exceptions.Timeout(f"transfer exceeded {timeout_s}s")
                if chunk:
                    f.write(chunk)
        return response.status_code


def download_to_path(url: str, target: Path, timeout_s: float = 30.0, attempts: int = 1,
                     chunk_size: int = 64 * 1024) -> int:
    """
    Download a URL to a local file.

    Args:
        url: Remote reference
        target: Local destination path
        timeout_s: Deadline for the whole transfer of one attempt
        attempts: Attempts on connection errors and timeouts (1 = no retry)
        chunk_size: Streaming chunk size in bytes

    Returns:
        HTTP status code of the final attempt

    Raises:
        AssetTransferFailed: if no attempt produced a response, or the
            transfer ran past its deadline
    """
    try:
        for attempt in Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type((requests.exceptions.ConnectionError, requests.exceptions.Timeout)),
            reraise=True,
        ):
            with attempt:
                status = _stream_to_file(url, target, timeout_s, chunk_size)
    except requests.exceptions.Timeout as e:
        _discard(target)
        raise AssetTransferFailed(url, reason=f"timed out: {e}") from e
    except requests.exceptions.RequestException as e:
        _discard(target)
        raise AssetTransferFailed(url, reason=str(e)) from e

    if status != 200:
        _discard(target)
    return status


def _discard(target: Path) -> None:
    try:
        target.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Could not remove partial transfer {target}: {e}")
