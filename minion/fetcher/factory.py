"""Segment fetcher registry.

Maps URI schemes to fetcher instances. The worker builds one registry at
startup with `build_default_registry()`; deployments with extra storage
backends register their own fetchers on top of it.
"""

import logging
import ssl
from typing import Optional
from urllib.parse import urlparse

from minion.fetcher.base import FetcherNotFoundError, SegmentFetcher
from minion.fetcher.http_fetcher import DEFAULT_FETCH_TIMEOUT_SECONDS, HttpSegmentFetcher
from minion.fetcher.local_fetcher import LocalSegmentFetcher

logger = logging.getLogger(__name__)

# Bare filesystem paths parse with an empty scheme
LOCAL_SCHEME = ""


class FetcherRegistry:
    def __init__(self) -> None:
        self._fetchers: dict[str, SegmentFetcher] = {}

    def register(self, scheme: str, fetcher: SegmentFetcher) -> None:
        scheme = scheme.lower()
        if scheme in self._fetchers:
            logger.info("Replacing fetcher for scheme '%s'", scheme)
        self._fetchers[scheme] = fetcher

    def get(self, uri: str) -> SegmentFetcher:
        """Return the fetcher registered for the scheme of `uri`.

        Raises:
            FetcherNotFoundError: If the scheme is not registered.
        """
        scheme = urlparse(uri).scheme.lower()
        fetcher = self._fetchers.get(scheme)
        if fetcher is None:
            raise FetcherNotFoundError(scheme, list(self._fetchers))
        return fetcher

    @property
    def schemes(self) -> list[str]:
        return sorted(self._fetchers)


def build_default_registry(
    ssl_context: Optional[ssl.SSLContext] = None,
    timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
) -> FetcherRegistry:
    """Registry with http, https, file and bare-path fetchers."""
    registry = FetcherRegistry()
    http_fetcher = HttpSegmentFetcher(ssl_context=ssl_context, timeout=timeout)
    local_fetcher = LocalSegmentFetcher()

    registry.register("http", http_fetcher)
    registry.register("https", http_fetcher)
    registry.register("file", local_fetcher)
    registry.register(LOCAL_SCHEME, local_fetcher)
    return registry
