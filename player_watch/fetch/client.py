from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout

import requests

from player_watch.logging.init import component_logger
from player_watch.services.deadline import Deadline

"""Reporting API client.

The API takes its key as a JSON body field and answers with a JSON array of
player records. Any transport error or non-200 answer ends the run.

With a run deadline the request runs on a worker thread and the caller waits
at most the remaining budget, so the budget bounds the whole transfer rather
than each socket read. On expiry the caller gets FetchError at once and the
abandoned worker stops at its next chunk.
"""

__all__ = [
    "FetchError",
    "HTTPStatusError",
    "PlayersClient",
]

CHUNK_SIZE = 64 * 1024


class FetchError(Exception):
    """Raised when the player roster cannot be retrieved."""


class HTTPStatusError(FetchError):
    def __init__(self, status_code: int, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"unexpected status {status_code} {reason}".rstrip())


class PlayersClient:
    """POSTs the API key to the report URL and returns the raw body."""

    def __init__(
        self,
        url: str,
        api_key: str,
        session: requests.Session | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.session = session or requests.Session()
        self.logger = logger or component_logger("fetch")

    def fetch(self, deadline: Deadline | None = None) -> bytes:
        """Retrieve the roster payload.

        Args:
            deadline: Run budget; None waits for the server indefinitely

        Raises:
            FetchError: transport failure, non-200 status or deadline expiry
        """
        start = time.perf_counter()
        if deadline is None:
            body = self._request(None)
        else:
            body = self._request_within(deadline)
        self.logger.debug(f"fetch: bytes={len(body)} elapsed_sec={time.perf_counter() - start:.3f}")
        return body

    def _request_within(self, deadline: Deadline) -> bytes:
        future: Future[bytes] = Future()

        def run() -> None:
            future.set_running_or_notify_cancel()
            try:
                future.set_result(self._request(deadline))
            except BaseException as e:
                future.set_exception(e)

        # daemon: an abandoned transfer must not hold up interpreter exit
        threading.Thread(target=run, name="fetch", daemon=True).start()
        try:
            return future.result(timeout=deadline.remaining())
        except FutureTimeout:
            self.logger.error(f"fetch: deadline expired budget_sec={deadline.budget_seconds:g}")
            raise FetchError("deadline expired before the roster was received") from None

    def _request(self, deadline: Deadline | None) -> bytes:
        timeout = deadline.timeout() if deadline is not None else None
        try:
            response = self.session.post(
                self.url,
                json={"report_api_key": self.api_key},
                headers={"Content-Type": "application/json"},
                timeout=timeout,
                stream=True,
            )
        except requests.RequestException as e:
            self.logger.error(f"fetch: error sending request err={e}")
            raise FetchError(f"request failed: {e}") from e

        try:
            if response.status_code != 200:
                self.logger.error(f"fetch: invalid status code status_code={response.status_code}")
                raise HTTPStatusError(response.status_code, response.reason or "")

            chunks: list[bytes] = []
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if deadline is not None and deadline.expired:
                    raise FetchError("deadline expired while reading the response")
                chunks.append(chunk)
            return b"".join(chunks)
        except requests.RequestException as e:
            self.logger.error(f"fetch: error reading response err={e}")
            raise FetchError(f"reading response failed: {e}") from e
        finally:
            response.close()
