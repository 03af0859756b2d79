# csp_server/app.py
# Flask app wiring: security headers on every response, CSP violation report intake
#
# Run with:  gunicorn csp_server.app:app

from typing import List, Optional

from flask import request, jsonify, render_template, current_app, g
from pydantic import TypeAdapter

from .config import app
from .observability import (
    init_logging,
    register_request_id,
    register_latency_logging,
    register_error_handlers,
    error_payload,
)
from .security import register_security_headers
from .ratelimit import init_rate_limiter
from .schemas import CspReport, CspViolation, ReportingApiReport
from .csp import DEFAULT_REPORT_URI

_REPORT_BATCH = TypeAdapter(List[ReportingApiReport])

# ---------------------- Cross-cutting initialization ----------------------
init_logging(app)
register_request_id(app)
register_latency_logging(app)
register_error_handlers(app)
register_security_headers(app)
# -------------------------------------------------------------------------


def _parse_violations(data) -> Optional[List[CspViolation]]:
    """
    Accept both browser report shapes. Non-CSP entries in a Reporting API
    batch (deprecation, network-error, ...) are skipped before validation,
    so their bodies never reject the batch. Returns None for unknown shapes.
    """
    if isinstance(data, list):
        entries = [e for e in data if isinstance(e, dict) and e.get("type") == "csp-violation"]
        reports = _REPORT_BATCH.validate_python(entries)
        return [r.body.to_violation() for r in reports]
    if isinstance(data, dict) and "csp-report" in data:
        return [CspReport.model_validate(data).csp_report]
    if isinstance(data, dict) and "body" in data:
        if data.get("type") != "csp-violation":
            return []
        return [ReportingApiReport.model_validate(data).body.to_violation()]
    return None  # unrecognized shape


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"}), 200


@app.route("/", methods=["GET"])
def index():
    """Sample page whose inline script/style carry the request nonce."""
    return render_template("index.html")


@app.route(DEFAULT_REPORT_URI, methods=["POST"])
def csp_report():
    """
    Violation reports from browsers. Bodies arrive as application/csp-report,
    application/json or application/reports+json, so parse regardless of type.
    """
    data = request.get_json(force=True, silent=True)
    if data is None:
        return jsonify(error_payload("Missing or invalid JSON body", 400)), 400

    violations = _parse_violations(data)  # ValidationError -> unified 400
    if violations is None:
        return jsonify(error_payload("Unrecognized CSP report format", 400)), 400

    for v in violations:
        current_app.logger.warning(
            "csp.violation",
            extra={
                "event": "csp.violation",
                "request_id": getattr(g, "request_id", None),
                "violated_directive": v.violated_directive or v.effective_directive,
                "blocked_uri": v.blocked_uri,
                "document_uri": v.document_uri,
                "disposition": v.disposition,
            },
        )
    return ("", 204)


# >>> Initialize rate limiter AFTER routes are registered
init_rate_limiter(app)

if __name__ == "__main__":
    app.run(debug=True)
