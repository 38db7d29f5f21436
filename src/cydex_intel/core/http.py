from __future__ import annotations

import logging
import threading
import time
from contextlib import closing
from typing import Optional

import requests

from cydex_intel.core import config
from cydex_intel.core.errors import FetchError, FetchTimeout

logger = logging.getLogger(__name__)


class HttpClient:
    """
    Feed fetcher with a whole-response deadline.

    Features:
    - Identifying User-Agent and feed Accept headers
    - Body streamed in chunks so the deadline covers the full transfer
    - No retries (callers own retry policy)
    """

    def __init__(
        self,
        *,
        timeout: float = config.REQUEST_TIMEOUT_SECONDS,
        user_agent: str = config.USER_AGENT,
        chunk_size: int = config.FETCH_CHUNK_SIZE,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.user_agent = user_agent
        self.chunk_size = chunk_size

    def close(self) -> None:
        self.session.close()

    def _headers(self) -> dict:
        return {
            "User-Agent": self.user_agent,
            "Accept": config.FEED_ACCEPT_HEADER,
        }

    def fetch(self, url: str, timeout: Optional[float] = None) -> str:
        """
        GET url and return the decoded body.

        Raises FetchTimeout if the body is not fully received within
        timeout seconds, FetchError on non-2xx status or transport failure.
        """
        timeout = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout

        try:
            resp = self.session.get(
                url,
                headers=self._headers(),
                timeout=timeout,
                stream=True,
            )
        except requests.Timeout as e:
            raise FetchTimeout(url, timeout) from e
        except requests.RequestException as e:
            raise FetchError(url, reason=str(e)) from e

        with closing(resp):
            if not resp.ok:
                raise FetchError(url, resp.status_code, resp.reason or "")

            body = self._read_body(resp, url, timeout, deadline)
            encoding = _declared_charset(resp) or "utf-8"
            logger.debug(f"Fetched {len(body)} bytes from {url} (HTTP {resp.status_code})")
            try:
                return body.decode(encoding, errors="replace")
            except LookupError:
                return body.decode("utf-8", errors="replace")

    def _read_body(self, resp: requests.Response, url: str, timeout: float, deadline: float) -> bytes:
        """
        Read the whole body on a helper thread and wait for it until deadline.

        requests' timeout bounds each socket read, not the transfer, and
        iter_content blocks until a whole chunk arrives.
        """
        outcome: dict = {}
        finished = threading.Event()

        def read() -> None:
            try:
                outcome["body"] = b"".join(
                    chunk for chunk in resp.iter_content(chunk_size=self.chunk_size) if chunk
                )
            except Exception as e:
                outcome["error"] = e
            finally:
                finished.set()

        reader = threading.Thread(target=read, name="feed-body", daemon=True)
        reader.start()
        if not finished.wait(max(deadline - time.monotonic(), 0.0)):
            logger.debug(f"Deadline of {timeout:g}s passed while reading {url}")
            # Wakes the reader blocked in recv; closing resp would wait on it
            try:
                resp.raw.shutdown()
            except (OSError, RuntimeError, ValueError) as e:
                logger.debug(f"Could not shut down socket for {url}: {e}")
            raise FetchTimeout(url, timeout)

        error = outcome.get("error")
        if isinstance(error, requests.Timeout):
            raise FetchTimeout(url, timeout) from error
        if isinstance(error, requests.RequestException):
            raise FetchError(url, reason=str(error)) from error
        if error is not None:
            raise error
        return outcome["body"]


def _declared_charset(resp: requests.Response) -> Optional[str]:
    """Charset from Content-Type, ignoring requests' ISO-8859-1 default for text/*."""
    content_type = resp.headers.get("Content-Type", "")
    if "charset=" not in content_type.lower():
        return None
    return resp.encoding


def default_client() -> HttpClient:
    """Create a default HTTP client for feed fetching."""
    return HttpClient()


def fetch_feed(
    url: str,
    timeout: float = config.REQUEST_TIMEOUT_SECONDS,
    client: Optional[HttpClient] = None,
) -> str:
    """Fetch raw feed text from url within timeout seconds."""
    http_client = client or default_client()
    return http_client.fetch(url, timeout)
