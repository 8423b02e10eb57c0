"""Fetcher module: resolves a segment URI to a fetcher by scheme.

Public API:
    build_default_registry(ssl_context, timeout) -> FetcherRegistry
    FetcherRegistry.get(uri) -> SegmentFetcher
"""

from minion.fetcher.base import FetcherNotFoundError, SegmentFetcher
from minion.fetcher.factory import FetcherRegistry, build_default_registry
from minion.fetcher.http_fetcher import HttpSegmentFetcher
from minion.fetcher.local_fetcher import LocalSegmentFetcher

__all__ = [
    "FetcherNotFoundError",
    "FetcherRegistry",
    "HttpSegmentFetcher",
    "LocalSegmentFetcher",
    "SegmentFetcher",
    "build_default_registry",
]
