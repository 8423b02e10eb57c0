"""Segment upload client: multipart POST of a tarred segment.

The client distinguishes two failure modes so callers can classify them:
  - The controller answered with a non-2xx status → `UploadStatusError`
    carrying the status code and response body.
  - The request never completed (connect/read/write failure, timeout) →
    the underlying `httpx.TransportError` propagates unchanged.
"""

import logging
import ssl
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_SOCKET_TIMEOUT_MS = 600_000

# Truncate bodies carried in errors so huge HTML error pages stay out of logs
_MAX_ERROR_BODY_CHARS = 1000


@dataclass
class UploadResponse:
    status_code: int
    body: str


class UploadStatusError(Exception):
    """Raised when the destination answers a non-2xx status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Upload failed with status {status_code}: {body}")


class SegmentUploadClient:
    """Uploads tarred segments over one pooled httpx client.

    Use as a context manager so the connection pool is closed:

        with SegmentUploadClient(get_ssl_context()) as client:
            client.upload_segment(...)
    """

    def __init__(self, ssl_context: Optional[ssl.SSLContext] = None):
        verify = ssl_context if ssl_context is not None else True
        self._client = httpx.Client(verify=verify)

    def __enter__(self) -> "SegmentUploadClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def upload_segment(
        self,
        upload_url: str,
        segment_name: str,
        archive_path: Path,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, str]] = None,
        timeout_ms: int = DEFAULT_SOCKET_TIMEOUT_MS,
    ) -> UploadResponse:
        """POST `archive_path` as a multipart file named `segment_name`.

        Raises:
            UploadStatusError: On any non-2xx response.
            httpx.TransportError: If the request could not be completed.
        """
        with open(archive_path, "rb") as fh:
            response = self._client.post(
                upload_url,
                headers=headers,
                params=params,
                files={"file": (segment_name, fh, "application/octet-stream")},
                timeout=timeout_ms / 1000.0,
            )

        if not response.is_success:
            raise UploadStatusError(
                response.status_code,
                response.text[:_MAX_ERROR_BODY_CHARS],
            )

        return UploadResponse(status_code=response.status_code, body=response.text)
