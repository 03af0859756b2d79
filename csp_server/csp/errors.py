# csp_server/csp/errors.py
# Error taxonomy for nonce generation and policy assembly.


class CspError(Exception):
    """Base class for every error raised by the CSP core."""


class EntropyUnavailable(CspError):
    """The OS secure random source could not produce bytes."""


class MalformedHash(CspError, ValueError):
    """A script/style hash is empty or not base64 after normalization."""

    def __init__(self, value: str, reason: str = "not a base64 digest"):
        self.value = value
        self.reason = reason
        super().__init__(f"malformed CSP hash {value!r}: {reason}")


class DirectiveTableError(CspError):
    """A directive table was built with no directives or an empty source list."""
