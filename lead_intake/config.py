"""Application configuration"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # CORS / origin gate
    # "*" or a comma-separated list of exact origins
    cors_origins: str = "*"
    # allow-all | allow-list | allow-pattern (inferred when unset)
    cors_policy: Optional[str] = None
    # e.g. "example.com" admits example.com and any subdomain of it
    cors_origin_domain: Optional[str] = None

    # reCAPTCHA v3 (verification is skipped entirely when the secret is unset)
    recaptcha_secret: Optional[str] = None
    recaptcha_min_score: float = 0.3
    recaptcha_verify_url: str = "https://www.google.com/recaptcha/api/siteverify"
    recaptcha_timeout_seconds: float = 10.0
    recaptcha_expected_action: Optional[str] = None
    verification_reject_status: int = 400

    # Validation
    strict_field_validation: bool = False

    # Outbound mail
    mail_transport: str = "smtp"
    # fail -> 500 when mail settings are incomplete, skip -> acknowledge without sending
    mail_misconfig_policy: str = "fail"
    email_from: Optional[str] = None
    email_to: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: int = 465
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    smtp_timeout_seconds: float = 15.0
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"

    class Config:
        env_file = ".env"
        case_sensitive = False
        frozen = True

    @property
    def cors_origin_list(self) -> List[str]:
        """Exact origins from CORS_ORIGINS (empty for the wildcard)"""
        if self.cors_origins.strip() == "*":
            return []
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
