# csp_server/csp/nonce.py
# Per-request CSP nonce: OS CSPRNG bytes, base64-encoded.

import base64
import logging
import secrets

from .errors import EntropyUnavailable

logger = logging.getLogger(__name__)

DEFAULT_NONCE_BYTES = 16


def generate_nonce(size_bytes: int = DEFAULT_NONCE_BYTES) -> str:
    """
    Return ``size_bytes`` random bytes from the OS entropy source as base64 text.

    Raises ValueError for a non-positive or non-integer size and
    EntropyUnavailable when the OS cannot supply random bytes. There is no
    fallback to the ``random`` module.
    """
    if isinstance(size_bytes, bool) or not isinstance(size_bytes, int):
        raise ValueError(f"nonce size must be an int, got {type(size_bytes).__name__}")
    if size_bytes < 1:
        raise ValueError(f"nonce size must be >= 1, got {size_bytes}")

    try:
        raw = secrets.token_bytes(size_bytes)
    except (OSError, NotImplementedError) as exc:
        logger.error("csp.nonce.entropy_failed", extra={"event": "csp.nonce.entropy_failed"})
        raise EntropyUnavailable("secure random source unavailable") from exc

    return base64.b64encode(raw).decode("ascii")
