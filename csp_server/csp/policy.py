# csp_server/csp/policy.py
# Purpose: PolicyConfig value object and Content-Security-Policy rendering.
# Notes:
# - Every call starts from a fresh copy of the baseline table; nothing is cached.
# - Environment shaping (dev vs prod) happens only in environment_policy_config().

from __future__ import annotations

import logging
import re
from typing import Iterable, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .directives import DirectiveTable
from .errors import MalformedHash

logger = logging.getLogger(__name__)

CSP_HEADER = "Content-Security-Policy"
CSP_REPORT_ONLY_HEADER = "Content-Security-Policy-Report-Only"
DEFAULT_REPORT_URI = "/api/csp-report"

HASH_ALGORITHMS = ("sha256-", "sha384-", "sha512-")
_BASE64_RE = re.compile(r"^[A-Za-z0-9+/_-]+={0,2}$")
_NONCE_PATTERN = r"^[A-Za-z0-9+/_-]+={0,2}$"


class PolicyConfig(BaseModel):
    """Per-request policy options; immutable once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    report_only: bool = False                     # emit the -Report-Only header name
    report_uri: Optional[str] = Field(default=None, min_length=1, pattern=r"^[^\s;,]+$")
    upgrade_insecure_requests: bool = True
    script_nonce: Optional[str] = Field(default=None, min_length=1, pattern=_NONCE_PATTERN)
    style_nonce: Optional[str] = Field(default=None, min_length=1, pattern=_NONCE_PATTERN)
    script_hashes: Tuple[str, ...] = ()
    style_hashes: Tuple[str, ...] = ()


class CspHeader(NamedTuple):
    header_name: str
    header_value: str


def normalize_hash(value: str) -> str:
    """
    Turn ``'sha256-abc'``, ``sha256-abc`` or ``abc`` into the quoted token ``'sha256-abc'``.

    Raises MalformedHash for empty digests or characters outside base64/base64url.
    """
    if not isinstance(value, str):
        raise MalformedHash(repr(value), "hash must be a string")
    stripped = value.strip().strip("'").strip()
    if not stripped:
        raise MalformedHash(value, "empty hash")

    if stripped.lower().startswith(HASH_ALGORITHMS):
        # algorithm names match case-insensitively; emit them lowercase
        algorithm, _, digest = stripped.partition("-")
        algorithm = algorithm.lower()
        prefixed = f"{algorithm}-{digest}"
    else:
        algorithm, digest = "sha256", stripped
        prefixed = f"sha256-{stripped}"

    if not digest:
        raise MalformedHash(value, f"empty {algorithm} digest")
    if not _BASE64_RE.match(digest):
        raise MalformedHash(value)
    return f"'{prefixed}'"


def _source_tokens(nonce: Optional[str], hashes: Iterable[str]) -> List[str]:
    tokens = []
    if nonce:
        tokens.append(f"'nonce-{nonce}'")
    tokens.extend(normalize_hash(h) for h in hashes)
    return tokens


def build_directives(config: PolicyConfig) -> DirectiveTable:
    """Baseline table with nonces, hashes and report-uri merged in."""
    table = DirectiveTable.from_baseline()
    table.append("script-src", *_source_tokens(config.script_nonce, config.script_hashes))
    table.append("style-src", *_source_tokens(config.style_nonce, config.style_hashes))
    if config.report_uri:
        table.set("report-uri", config.report_uri)
    return table


def generate_csp(config: Optional[PolicyConfig] = None) -> CspHeader:
    """Render the policy for ``config`` into a (header name, header value) pair."""
    config = config or PolicyConfig()
    value = build_directives(config).render()
    if config.upgrade_insecure_requests:
        value = f"{value}; upgrade-insecure-requests"  # directive without a value

    name = CSP_REPORT_ONLY_HEADER if config.report_only else CSP_HEADER
    logger.debug(
        "csp.policy.built",
        extra={
            "event": "csp.policy.built",
            "header": name,
            "has_nonce": bool(config.script_nonce or config.style_nonce),
            "report_uri": config.report_uri,
        },
    )
    return CspHeader(name, value)


def environment_policy_config(config: Optional[PolicyConfig], is_development: bool) -> PolicyConfig:
    """
    Force the report/upgrade fields for the current environment.

    development: report-only, no upgrade-insecure-requests, no report-uri.
    production:  enforcing, upgrade-insecure-requests, report-uri defaulting
                 to DEFAULT_REPORT_URI. Nonces and hashes pass through.
    """
    config = config or PolicyConfig()
    if is_development:
        return config.model_copy(update={
            "report_only": True,
            "upgrade_insecure_requests": False,
            "report_uri": None,
        })
    return config.model_copy(update={
        "report_only": False,
        "upgrade_insecure_requests": True,
        "report_uri": config.report_uri or DEFAULT_REPORT_URI,
    })


def get_environment_csp(config: Optional[PolicyConfig] = None, is_development: bool = False) -> CspHeader:
    return generate_csp(environment_policy_config(config, is_development))
