# csp_server/ratelimit.py
# App-scoped rate limiting for the violation report endpoint, with JSON 429 errors

from flask import jsonify, request
from flask_limiter import Limiter
from flask_limiter.errors import RateLimitExceeded
from flask_limiter.util import get_remote_address

from .observability import error_payload

DEFAULT_LIMIT = "300/minute"


def _client_ip():
    """
    Prefer edge-provided IPs when behind a proxy/CDN.
    Falls back to Werkzeug's remote_addr via get_remote_address().
    """
    ip = request.headers.get("CF-Connecting-IP")
    if ip:
        return ip.strip()
    xff = request.headers.get("X-Forwarded-For")  # first XFF hop
    if xff:
        return xff.split(",")[0].strip()
    return get_remote_address()


def init_rate_limiter(app) -> Limiter:
    """
    Initialize Flask-Limiter and wrap the CSP report endpoint.
    Called after routes are registered (see app.py).
    """
    if app.config.get("_RATE_LIMITER_INIT", False):
        limiter = app.extensions.get("csp_report_limiter")
        if limiter:
            return limiter

    app.config["RATELIMIT_HEADERS_ENABLED"] = True

    limiter = Limiter(
        key_func=_client_ip,
        app=app,
        default_limits=[DEFAULT_LIMIT],  # global safety net
        storage_uri="memory://",        # per-instance
        strategy="moving-window",       # no burst at window boundaries
        headers_enabled=True,           # emit X-RateLimit-* and Retry-After
    )

    @limiter.request_filter
    def _health_skip():
        return request.path == "/health"

    @app.errorhandler(RateLimitExceeded)
    def _rate_limit_exceeded(_e):
        return jsonify(error_payload("Too Many Requests", 429)), 429

    # Browsers can emit a report per blocked resource; cap each client.
    report_limit = limiter.limit(app.config.get("CSP_REPORT_RATE_LIMIT", "60/minute"))
    if "csp_report" in app.view_functions:
        app.view_functions["csp_report"] = report_limit(app.view_functions["csp_report"])

    app.extensions["csp_report_limiter"] = limiter
    app.config["_RATE_LIMITER_INIT"] = True
    return limiter
