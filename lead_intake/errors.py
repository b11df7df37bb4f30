"""Lead intake error taxonomy

Client-facing errors (AccessDenied, InvalidSubmission, VerificationRejected)
carry a message that is safe to return to the browser. Server-side errors
(NotificationFailure, Misconfigured) carry internal detail for the logs only;
callers see the generic public message.
"""
from typing import List, Optional


class LeadIntakeError(Exception):
    """Base class for pipeline rejections and failures"""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.public_message)
        self.detail = detail

    def to_response(self) -> dict:
        return {"ok": False, "message": self.public_message}


class AccessDenied(LeadIntakeError):
    status_code = 403
    public_message = "Origin not allowed"

    def __init__(self, origin: Optional[str] = None):
        super().__init__(f"CORS blocked for origin {origin}")
        self.origin = origin


class InvalidSubmission(LeadIntakeError):
    status_code = 400
    public_message = "name, email, and service are required"

    def __init__(self, missing: Optional[List[str]] = None, invalid: Optional[List[str]] = None):
        self.missing = missing or []
        self.invalid = invalid or []
        if self.invalid and not self.missing:
            self.public_message = "Invalid field format: " + ", ".join(self.invalid)
        super().__init__(f"missing={self.missing} invalid={self.invalid}")

    def to_response(self) -> dict:
        body = super().to_response()
        if self.missing:
            body["missing"] = self.missing
        if self.invalid:
            body["invalid"] = self.invalid
        return body


class VerificationRejected(LeadIntakeError):
    status_code = 400
    public_message = "reCAPTCHA failed"

    def __init__(self, reason: str, status_code: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        if status_code is not None:
            self.status_code = status_code

    def to_response(self) -> dict:
        body = super().to_response()
        body["reason"] = self.reason
        return body


class NotificationFailure(LeadIntakeError):
    status_code = 500
    public_message = "Server mail error"


class Misconfigured(LeadIntakeError):
    status_code = 500
    public_message = "Server misconfigured"
