"""HTTP(S) segment fetcher.

Streams the response body to disk in chunks so large segments never sit
in memory. Shares the process-wide TLS context with the uploader.
"""

import logging
import ssl
from pathlib import Path
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT_SECONDS = 300.0

_CHUNK_SIZE = 1024 * 1024


class HttpSegmentFetcher:
    def __init__(
        self,
        ssl_context: Optional[ssl.SSLContext] = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    ):
        self._verify = ssl_context if ssl_context is not None else True
        self._timeout = timeout

    def fetch(self, uri: str, dest: Path) -> None:
        logger.info("Downloading %s to %s", uri, dest)

        with httpx.Client(verify=self._verify, timeout=self._timeout) as client:
            with client.stream("GET", uri, follow_redirects=True) as response:
                response.raise_for_status()
                with open(dest, "wb") as fh:
                    for chunk in response.iter_bytes(_CHUNK_SIZE):
                        fh.write(chunk)

        logger.debug("Downloaded %d bytes from %s", dest.stat().st_size, uri)
