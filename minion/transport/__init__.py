"""Transport module: shared TLS context and the segment upload client.

Public API:
    init_transport(settings) -> ssl.SSLContext | None
    get_ssl_context() -> ssl.SSLContext | None
    SegmentUploadClient(ssl_context).upload_segment(...) -> UploadResponse
"""

from minion.transport.tls import TransportConfigError, get_ssl_context, init_transport
from minion.transport.uploader import SegmentUploadClient, UploadResponse, UploadStatusError

__all__ = [
    "init_transport",
    "get_ssl_context",
    "TransportConfigError",
    "SegmentUploadClient",
    "UploadResponse",
    "UploadStatusError",
]
