"""Process-wide client TLS context for controller transfers.

`init_transport()` runs once at worker startup. It builds an
`ssl.SSLContext` when HTTPS is enabled and publishes it for every
subsequent upload and download. After the first call the context is
frozen: later calls are no-ops, so there is exactly one context for the
lifetime of the process and readers need no locking.

When HTTPS is disabled the context stays None and clients fall back to
httpx's default transport.
"""

import logging
import ssl
import threading
from typing import Optional

from minion.core.config import Settings

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()
_initialized = False
_ssl_context: Optional[ssl.SSLContext] = None


class TransportConfigError(Exception):
    """Raised when TLS material cannot be loaded."""


def init_transport(settings: Settings) -> Optional[ssl.SSLContext]:
    """Initialise the shared TLS context from settings. Idempotent.

    Returns:
        The process-wide context, or None when HTTPS is disabled.

    Raises:
        TransportConfigError: If HTTPS is enabled and the certificate or
            key files cannot be loaded. The context stays uninitialised
            so the call can be repeated after fixing the configuration.
    """
    global _initialized, _ssl_context

    with _init_lock:
        if _initialized:
            logger.debug("Transport already initialised; ignoring repeat call")
            return _ssl_context

        if settings.https_enabled:
            _ssl_context = _build_ssl_context(settings)
            logger.info("HTTPS enabled for segment transfers")
        else:
            logger.info("HTTPS disabled; using default transport")

        _initialized = True
        return _ssl_context


def get_ssl_context() -> Optional[ssl.SSLContext]:
    """Return the shared TLS context, or None if HTTPS is not enabled."""
    return _ssl_context


def reset_transport() -> None:
    """Forget the initialised context. Test use only."""
    global _initialized, _ssl_context

    with _init_lock:
        _initialized = False
        _ssl_context = None


def _build_ssl_context(settings: Settings) -> ssl.SSLContext:
    try:
        context = ssl.create_default_context(cafile=settings.ssl_ca_file or None)
        if settings.ssl_cert_file:
            context.load_cert_chain(
                certfile=settings.ssl_cert_file,
                keyfile=settings.ssl_key_file or None,
                password=settings.ssl_key_password or None,
            )
    except (OSError, ssl.SSLError) as exc:
        raise TransportConfigError(f"Cannot load TLS material: {exc}") from exc
    return context
