"""SegmentFetcher protocol.

A fetcher copies one remote segment archive to a local file. Fetchers are
selected by URI scheme (see `minion.fetcher.factory`) and own their own
retry behaviour, if any; callers treat every raised exception as fatal.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class SegmentFetcher(Protocol):
    """Protocol for segment fetcher implementations."""

    def fetch(self, uri: str, dest: Path) -> None:
        """Copy the artifact at `uri` to the local file `dest`.

        Raises:
            Exception: Any transport or filesystem error, unchanged.
        """
        ...  # noqa: PLR6301


class FetcherNotFoundError(Exception):
    """Raised when no fetcher is registered for a URI scheme."""

    def __init__(self, scheme: str, known: list[str]):
        self.scheme = scheme
        valid = ", ".join(sorted(known)) or "(none)"
        super().__init__(f"No fetcher for scheme '{scheme}'. Registered: {valid}")
