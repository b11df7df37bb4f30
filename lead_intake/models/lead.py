"""Lead-related Pydantic models"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any


class LeadSubmission(BaseModel):
    """Lead form submission (public, no auth)"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    service: Optional[str] = None
    message: Optional[str] = None
    recaptcha_token: Optional[str] = Field(default=None, alias="recaptchaToken")

    def public_fields(self) -> Dict[str, Any]:
        """Submitted fields safe to echo back (never the token)"""
        return self.model_dump(exclude={"recaptcha_token"})


class NotificationStatus(BaseModel):
    """Outcome of the notification attempt"""
    attempted: bool
    delivered: bool


class LeadResponse(BaseModel):
    """Lead submission response"""
    ok: bool
    message: str
    notification: Optional[NotificationStatus] = None
    lead: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    ok: bool
    time: str
