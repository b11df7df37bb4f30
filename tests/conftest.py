"""Shared fixtures: settings, stubbed verifier HTTP and a recording mail transport."""

import httpx
import pytest
from fastapi.testclient import TestClient

from lead_intake.config import Settings
from lead_intake.main import create_app
from lead_intake.services.notification_service import NotificationDispatcher
from lead_intake.services.recaptcha_service import RecaptchaVerifier


VALID_LEAD = {
    "name": "Ana",
    "email": "ana@x.com",
    "service": "Consulting",
    "recaptchaToken": "tok",
}


class RecordingMailTransport:
    """In-memory transport that records every email it is asked to send."""

    name = "memory"

    def __init__(self, missing=None, error=None):
        self.sent = []
        self._missing = missing or []
        self._error = error

    def missing_settings(self):
        return list(self._missing)

    async def send(self, email):
        if self._error is not None:
            raise self._error
        self.sent.append(email)


class SiteverifyStub:
    """httpx transport standing in for the reCAPTCHA siteverify endpoint."""

    def __init__(self, payload=None, status_code=200, error=None):
        self.payload = payload if payload is not None else {"success": True, "score": 0.9}
        self.status_code = status_code
        self.error = error
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)


def make_settings(**overrides):
    values = {
        "cors_origins": "*",
        "recaptcha_secret": "test-secret",
        "recaptcha_min_score": 0.3,
        "mail_misconfig_policy": "fail",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_client(settings=None, siteverify=None, mail=None):
    settings = settings or make_settings()
    siteverify = siteverify or SiteverifyStub()
    mail = mail or RecordingMailTransport()
    verifier = RecaptchaVerifier.from_settings(settings, transport=siteverify.transport)
    dispatcher = NotificationDispatcher(mail, settings.mail_misconfig_policy)
    app = create_app(settings, verifier=verifier, dispatcher=dispatcher)
    return TestClient(app)


@pytest.fixture
def siteverify():
    return SiteverifyStub()


@pytest.fixture
def mail():
    return RecordingMailTransport()


@pytest.fixture
def client(siteverify, mail):
    return make_client(siteverify=siteverify, mail=mail)
