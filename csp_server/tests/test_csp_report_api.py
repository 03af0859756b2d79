# csp_server/tests/test_csp_report_api.py
# Purpose: /api/csp-report accepts both browser report formats and rejects junk
# with the unified JSON error shape.

import json
import logging

import pytest

from csp_server.app import app
from csp_server.schemas import ErrorResponse

LEGACY_REPORT = {
    "csp-report": {
        "document-uri": "https://example.com/page",
        "referrer": "",
        "violated-directive": "script-src-elem",
        "effective-directive": "script-src-elem",
        "original-policy": "default-src 'self'; report-uri /api/csp-report",
        "disposition": "enforce",
        "blocked-uri": "https://evil.example.net/x.js",
        "line-number": 12,
        "column-number": 4,
        "status-code": 200,
    }
}

REPORTING_API_BATCH = [
    {
        "type": "csp-violation",
        "age": 10,
        "url": "https://example.com/page",
        "user_agent": "Mozilla/5.0",
        "body": {
            "documentURL": "https://example.com/page",
            "blockedURL": "inline",
            "effectiveDirective": "style-src-attr",
            "originalPolicy": "default-src 'self'",
            "disposition": "report",
            "statusCode": 200,
        },
    },
    {
        "type": "deprecation",
        "url": "https://example.com/page",
        "body": {},
    },
]


@pytest.fixture(scope="module")
def client():
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c


def _assert_error(res, code):
    assert res.status_code == code
    assert res.is_json
    body = ErrorResponse.model_validate(res.get_json())
    assert body.code == code
    assert body.request_id == res.headers.get("X-Request-ID")
    return body


class _RecordList(logging.Handler):
    """Collects records emitted on app.logger, independent of pytest's own capture."""

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)

    def violations(self):
        return [r for r in self.records if getattr(r, "event", None) == "csp.violation"]


@pytest.fixture
def app_log():
    handler = _RecordList()
    app.logger.addHandler(handler)
    yield handler
    app.logger.removeHandler(handler)


@pytest.mark.parametrize("content_type", ["application/csp-report", "application/json"])
def test_legacy_report_accepted(client, content_type, app_log):
    res = client.post("/api/csp-report", data=json.dumps(LEGACY_REPORT), content_type=content_type)
    assert res.status_code == 204
    assert res.data == b""
    violations = app_log.violations()
    assert len(violations) == 1
    assert violations[0].blocked_uri == "https://evil.example.net/x.js"
    assert violations[0].violated_directive == "script-src-elem"


def test_reporting_api_batch_accepted(client, app_log):
    res = client.post(
        "/api/csp-report",
        data=json.dumps(REPORTING_API_BATCH),
        content_type="application/reports+json",
    )
    assert res.status_code == 204
    violations = app_log.violations()
    assert len(violations) == 1  # the deprecation report is skipped
    assert violations[0].violated_directive == "style-src-attr"
    assert violations[0].disposition == "report"


def test_batch_with_null_body_on_other_report_type_keeps_violations(client, app_log):
    batch = [
        {"type": "csp-violation", "body": {"blockedURL": "https://cdn.example.net/a.js"}},
        {"type": "network-error", "body": None},
        {"type": "intervention"},
        "not-a-report",
    ]
    res = client.post("/api/csp-report", data=json.dumps(batch), content_type="application/reports+json")
    assert res.status_code == 204
    violations = app_log.violations()
    assert len(violations) == 1
    assert violations[0].blocked_uri == "https://cdn.example.net/a.js"


def test_single_non_csp_reporting_api_object_ignored(client, app_log):
    res = client.post("/api/csp-report", json={"type": "deprecation", "body": None})
    assert res.status_code == 204
    assert app_log.violations() == []


def test_csp_violation_with_null_body_rejected(client):
    res = client.post("/api/csp-report", json=[{"type": "csp-violation", "body": None}])
    _assert_error(res, 400)


def test_single_reporting_api_object_accepted(client):
    res = client.post("/api/csp-report", json=REPORTING_API_BATCH[0])
    assert res.status_code == 204


def test_report_response_carries_security_headers(client):
    res = client.post("/api/csp-report", json=LEGACY_REPORT)
    assert res.headers.get("X-Content-Type-Options") == "nosniff"
    assert res.headers.get("X-Request-ID")


def test_non_json_body_rejected(client):
    res = client.post("/api/csp-report", data="not json", content_type="application/csp-report")
    _assert_error(res, 400)


def test_unknown_shape_rejected(client):
    res = client.post("/api/csp-report", json={"hello": "world"})
    body = _assert_error(res, 400)
    assert "format" in body.error


def test_invalid_field_types_rejected(client):
    bad = {"csp-report": {"line-number": "twelve"}}
    res = client.post("/api/csp-report", json=bad)
    body = _assert_error(res, 400)
    assert body.details


def test_get_not_allowed(client):
    res = client.get("/api/csp-report")
    _assert_error(res, 405)
