# csp_server/schemas.py
# Purpose: Pydantic v2 models for CSP violation reports & error bodies.
# Notes:
# - Browsers send two shapes: the legacy `report-uri` body ({"csp-report": {...}},
#   hyphenated keys) and Reporting API batches ([{"type": "csp-violation", "body": {...}}],
#   camelCase keys). Both normalize to CspViolation.

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CspViolation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    document_uri: Optional[str] = Field(default=None, alias="document-uri")
    referrer: Optional[str] = None
    violated_directive: Optional[str] = Field(default=None, alias="violated-directive")
    effective_directive: Optional[str] = Field(default=None, alias="effective-directive")
    original_policy: Optional[str] = Field(default=None, alias="original-policy")
    disposition: Optional[str] = None  # "enforce" | "report"
    blocked_uri: Optional[str] = Field(default=None, alias="blocked-uri")
    source_file: Optional[str] = Field(default=None, alias="source-file")
    line_number: Optional[int] = Field(default=None, alias="line-number")
    column_number: Optional[int] = Field(default=None, alias="column-number")
    status_code: Optional[int] = Field(default=None, alias="status-code")
    script_sample: Optional[str] = Field(default=None, alias="script-sample")


class CspReport(BaseModel):
    """Legacy report-uri body."""

    csp_report: CspViolation = Field(..., alias="csp-report")


class ReportingApiViolationBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    documentURL: Optional[str] = None
    referrer: Optional[str] = None
    blockedURL: Optional[str] = None
    effectiveDirective: Optional[str] = None
    originalPolicy: Optional[str] = None
    sourceFile: Optional[str] = None
    sample: Optional[str] = None
    disposition: Optional[str] = None
    statusCode: Optional[int] = None
    lineNumber: Optional[int] = None
    columnNumber: Optional[int] = None

    def to_violation(self) -> CspViolation:
        return CspViolation(
            document_uri=self.documentURL,
            referrer=self.referrer,
            violated_directive=self.effectiveDirective,
            effective_directive=self.effectiveDirective,
            original_policy=self.originalPolicy,
            disposition=self.disposition,
            blocked_uri=self.blockedURL,
            source_file=self.sourceFile,
            line_number=self.lineNumber,
            column_number=self.columnNumber,
            status_code=self.statusCode,
            script_sample=self.sample,
        )


class ReportingApiReport(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    url: Optional[str] = None
    age: Optional[int] = None
    user_agent: Optional[str] = None
    body: ReportingApiViolationBody


class ErrorResponse(BaseModel):
    error: str
    code: int
    request_id: Optional[str] = None
    details: Optional[List[dict]] = None
