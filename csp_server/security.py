# csp_server/security.py
# Per-request CSP nonce + security headers on every response.
# The nonce lives on flask.g and is exposed to templates as `csp_nonce`.

from typing import Any, Optional
from urllib.parse import urlsplit

from flask import Response, g, request

from .csp import (
    CSP_HEADER,
    CSP_REPORT_ONLY_HEADER,
    EntropyUnavailable,
    PolicyConfig,
    environment_policy_config,
    generate_nonce,
    get_security_headers,
    normalize_hash,
)


def _static_config(app: Any, config: Optional[PolicyConfig]) -> PolicyConfig:
    """Options that do not change per request: explicit config or app.config values."""
    if config is not None:
        return config
    return PolicyConfig(
        report_uri=app.config.get("CSP_REPORT_URI"),
        script_hashes=app.config.get("CSP_SCRIPT_HASHES", ()),
        style_hashes=app.config.get("CSP_STYLE_HASHES", ()),
    )


def _validate_hashes(config: PolicyConfig) -> None:
    for value in (*config.script_hashes, *config.style_hashes):
        normalize_hash(value)  # raises MalformedHash


def _hostname() -> str:
    return urlsplit(request.url).hostname or ""


def register_security_headers(app: Any, config: Optional[PolicyConfig] = None) -> None:
    """
    Attach a fresh nonce to each request and the full security header set to each response.

    ``config`` pins the non-nonce policy options for every request; when omitted
    they are read from app.config (CSP_REPORT_URI, CSP_SCRIPT_HASHES,
    CSP_STYLE_HASHES) on each request. Either way the dev/prod shaping comes
    from app.config["CSP_DEVELOPMENT"].
    """
    if app.config.get("_SEC_HEADERS_INIT", False):
        return  # idempotent for reloader

    # Bad hashes fail at startup rather than on the first request.
    _validate_hashes(_static_config(app, config))

    @app.before_request
    def _csp_nonce():
        g.csp_config = None
        try:
            g.csp_nonce = generate_nonce(app.config.get("CSP_NONCE_BYTES", 16))
        except EntropyUnavailable:
            # Fallback: serve the baseline policy without a nonce; inline content stays blocked.
            g.csp_nonce = None
            app.logger.error(
                "csp.nonce.unavailable",
                exc_info=True,
                extra={"event": "csp.nonce.unavailable", "request_id": getattr(g, "request_id", None)},
            )

        base = _static_config(app, config)
        _validate_hashes(base)  # app.config may have changed since startup
        g.csp_config = base.model_copy(update={"script_nonce": g.csp_nonce, "style_nonce": g.csp_nonce})

    @app.context_processor
    def _inject_csp_nonce():
        return {"csp_nonce": g.get("csp_nonce")}

    @app.after_request
    def _security_headers(resp: Response) -> Response:
        policy = g.get("csp_config")
        if policy is None:
            # before_request never finished (early abort or invalid config): nonce-only baseline
            nonce = g.get("csp_nonce")
            policy = PolicyConfig(script_nonce=nonce, style_nonce=nonce)
        policy = environment_policy_config(policy, app.config.get("CSP_DEVELOPMENT", False))

        headers = get_security_headers(_hostname(), policy)
        # Only one CSP-family header may survive on the response.
        for name in (CSP_HEADER, CSP_REPORT_ONLY_HEADER):
            if name not in headers:
                resp.headers.pop(name, None)
        for name, value in headers.items():
            resp.headers[name] = value  # overwrite anything set by views
        return resp

    app.config["_SEC_HEADERS_INIT"] = True
