# csp_server/csp/headers.py
# Full response security header set: CSP plus the fixed hardening headers.

import logging
from types import MappingProxyType
from typing import Dict, Optional

from .policy import PolicyConfig, generate_csp

logger = logging.getLogger(__name__)

STATIC_SECURITY_HEADERS = MappingProxyType({
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
    "X-Frame-Options": "DENY",  # defense in depth next to frame-src
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",  # legacy browsers only
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": ", ".join([
        "camera=()",
        "microphone=()",
        "geolocation=()",
        "interest-cohort=()",  # FLoC opt-out
    ]),
    "Cross-Origin-Embedder-Policy": "credentialless",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-site",
})


def get_security_headers(domain: str, config: Optional[PolicyConfig] = None) -> Dict[str, str]:
    """
    Return every header to set on a response, CSP first.

    ``domain`` is the request hostname. It is accepted for per-domain policies
    but does not change the output today.
    """
    csp = generate_csp(config)
    headers = {csp.header_name: csp.header_value}
    headers.update(STATIC_SECURITY_HEADERS)
    logger.debug(
        "csp.headers.built",
        extra={"event": "csp.headers.built", "domain": domain, "header_count": len(headers)},
    )
    return headers
