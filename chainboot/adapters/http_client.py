"""HTTP transport for snapshot downloads.

This module provides a thin wrapper around ``requests.Session`` so the cloud
acquirer can share timeout policy, connection retries and header construction,
plus ``HttpSnapshotDownloader`` which implements ``DownloadPort`` by streaming a
response body to disk chunk by chunk.

Dependencies:
    - ``requests`` for network I/O.
    - ``chainboot.domain.errors`` for typed transport and cancel failures.

Call context:
    - Constructed by ``chainboot.app.context.AppContext`` for cloud mode.
    - Used only from the orchestrator worker thread through
      ``chainboot.usecases.acquire_snapshot.AcquireFromCloud``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import requests
from requests import exceptions as req_exc

from chainboot.domain.errors import BootstrapIOError, CancelledError, TransportError
from chainboot.domain.ports import TransferProgressFn

DEFAULT_USER_AGENT = "chainboot/0.1"


@dataclass
class HttpConfig:
    """Timeout and retry configuration for bootstrap HTTP calls.

    Attributes:
        request_timeout_s: Connect timeout in seconds.
        download_timeout_s: Read timeout in seconds between streamed chunks.
        retries: Extra connection attempts for the opening request, made
            inside the transport on timeout or connection failure. Default 0:
            a failed download fails the run, which is never retried.
        chunk_size: Streaming chunk size in bytes.
        max_redirects: Redirects followed before giving up.
        user_agent: Value of the ``User-Agent`` header; some mirrors reject
            requests without one.
    """
    request_timeout_s: int = 10
    download_timeout_s: int = 60
    retries: int = 0
    chunk_size: int = 64 * 1024
    max_redirects: int = 3
    user_agent: str = DEFAULT_USER_AGENT


class RetryingSession:
    """Shared requests wrapper with default headers and retry loops.

    This class is intentionally transport-only. Callers provide URLs and decide
    how to map non-2xx responses into domain errors.
    """

    def __init__(self, cfg: Optional[HttpConfig] = None) -> None:
        self.cfg = cfg or HttpConfig()
        self.session = requests.Session()
        self.session.max_redirects = self.cfg.max_redirects

    def _headers(self, accept: str = "*/*") -> Dict[str, str]:
        return {"Accept": accept, "User-Agent": self.cfg.user_agent}

    def get(
        self,
        url: str,
        *,
        accept: str = "*/*",
        timeout: Optional[int] = None,
        stream: bool = False,
    ) -> requests.Response:
        """Send a GET request with retries on timeout/connectivity failures.

        Args:
            url: Absolute URL.
            accept: ``Accept`` header value.
            timeout: Optional read timeout override in seconds.
            stream: Whether to stream the response body.

        Returns:
            ``requests.Response`` from the first successful attempt.

        Raises:
            TransportError: If all attempts fail with timeout/connection errors,
                or the request itself is invalid.
        """
        last_err: TransportError | None = None
        attempts = self.cfg.retries + 1
        read_timeout = timeout or self.cfg.request_timeout_s
        for _ in range(attempts):
            try:
                return self.session.get(
                    url,
                    headers=self._headers(accept=accept),
                    timeout=(self.cfg.request_timeout_s, read_timeout),
                    stream=stream,
                    allow_redirects=True,
                )
            except (req_exc.Timeout, req_exc.ConnectionError) as exc:
                last_err = TransportError(f"Download {url} failed with error: {exc}")
            except req_exc.RequestException as exc:
                raise TransportError(f"Download {url} failed with error: {exc}") from exc
        raise last_err


class HttpSnapshotDownloader:
    """``DownloadPort`` implementation backed by ``RetryingSession``."""

    def __init__(self, session: Optional[RetryingSession] = None) -> None:
        self.session = session or RetryingSession()

    def download_to_file(self, url: str, target: Path, progress: TransferProgressFn) -> None:
        """Stream ``url`` into ``target``, consulting ``progress`` after every chunk.

        The caller owns ``target``: on failure or cancel this method leaves
        whatever was written in place and raises.

        Raises:
            TransportError: Connection failure, broken transfer, or a non-2xx
                status.
            CancelledError: ``progress`` returned ``False``.
            BootstrapIOError: ``target`` cannot be created or written.
        """
        if not url:
            raise TransportError("url is empty")
        cfg = self.session.cfg
        response = self.session.get(
            url,
            accept="application/zip, application/octet-stream, */*",
            timeout=cfg.download_timeout_s,
            stream=True,
        )
        try:
            if response.status_code // 100 != 2:
                raise TransportError(
                    f"Download {url} failed with HTTP code: {response.status_code}."
                )
            total = _content_length(response)
            received = 0
            try:
                handle = target.open("wb")
            except OSError as exc:
                raise BootstrapIOError(f"failed to create file: {target}", str(exc)) from exc
            with handle:
                if not progress(total, received):
                    raise CancelledError("Bootstrap download cancelled")
                try:
                    for chunk in response.iter_content(chunk_size=cfg.chunk_size):
                        if not chunk:
                            continue
                        handle.write(chunk)
                        received += len(chunk)
                        if not progress(total, received):
                            raise CancelledError("Bootstrap download cancelled")
                except req_exc.RequestException as exc:
                    raise TransportError(f"Download {url} failed with error: {exc}") from exc
        finally:
            response.close()


def _content_length(response: requests.Response) -> int:
    raw = response.headers.get("Content-Length") if response.headers else None
    try:
        return max(0, int(raw or 0))
    except (TypeError, ValueError):
        return 0


__all__ = ["DEFAULT_USER_AGENT", "HttpConfig", "HttpSnapshotDownloader", "RetryingSession"]
