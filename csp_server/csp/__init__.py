# csp_server/csp/__init__.py
# Re-export the CSP core so callers can do: from csp_server.csp import generate_csp

from .directives import BASELINE_DIRECTIVES, DirectiveTable
from .errors import CspError, DirectiveTableError, EntropyUnavailable, MalformedHash
from .headers import STATIC_SECURITY_HEADERS, get_security_headers
from .nonce import DEFAULT_NONCE_BYTES, generate_nonce
from .policy import (
    CSP_HEADER,
    CSP_REPORT_ONLY_HEADER,
    DEFAULT_REPORT_URI,
    CspHeader,
    PolicyConfig,
    environment_policy_config,
    generate_csp,
    get_environment_csp,
    normalize_hash,
)

__all__ = [
    "BASELINE_DIRECTIVES",
    "CSP_HEADER",
    "CSP_REPORT_ONLY_HEADER",
    "CspError",
    "CspHeader",
    "DEFAULT_NONCE_BYTES",
    "DEFAULT_REPORT_URI",
    "DirectiveTable",
    "DirectiveTableError",
    "EntropyUnavailable",
    "MalformedHash",
    "PolicyConfig",
    "STATIC_SECURITY_HEADERS",
    "environment_policy_config",
    "generate_csp",
    "generate_nonce",
    "get_environment_csp",
    "get_security_headers",
    "normalize_hash",
]
