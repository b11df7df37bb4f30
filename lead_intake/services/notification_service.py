"""Lead notification email: rendering, transports and dispatch"""
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape
from typing import Dict, List, Optional
import asyncio
import logging
import smtplib
import httpx

from lead_intake.config import Settings
from lead_intake.errors import Misconfigured, NotificationFailure
from lead_intake.models.lead import LeadSubmission

logger = logging.getLogger(__name__)

FAIL_ON_MISCONFIG = "fail"
SKIP_ON_MISCONFIG = "skip"
MISCONFIG_POLICIES = (FAIL_ON_MISCONFIG, SKIP_ON_MISCONFIG)


@dataclass(frozen=True)
class LeadEmail:
    subject: str
    html: str
    text: str
    reply_to: Optional[str] = None


@dataclass(frozen=True)
class NotificationResult:
    attempted: bool
    delivered: bool
    failure_detail: Optional[str] = None


def _single_line(value: str) -> str:
    return " ".join(value.splitlines()).strip()


def _html_value(value: Optional[str]) -> str:
    """Escape user text and keep its line breaks visible"""
    if not value:
        return "-"
    return "<br>".join(escape(line, quote=True) for line in value.splitlines())


def render_lead_email(lead: LeadSubmission) -> LeadEmail:
    """
    Build the operator notification for an accepted lead

    Every user-supplied value is HTML-escaped before it is placed in the body.
    """
    subject = _single_line(f"New Lead: {lead.name} ({lead.service})")

    html = f"""
    <h2>New Consultation Lead</h2>
    <p><strong>Name:</strong> {_html_value(lead.name)}</p>
    <p><strong>Email:</strong> {_html_value(lead.email)}</p>
    <p><strong>Phone:</strong> {_html_value(lead.phone)}</p>
    <p><strong>Service:</strong> {_html_value(lead.service)}</p>
    <p><strong>Message:</strong></p>
    <p style="white-space:pre-wrap;">{_html_value(lead.message)}</p>
    """

    text = "\n".join([
        "New Consultation Lead",
        "",
        f"Name: {lead.name}",
        f"Email: {lead.email}",
        f"Phone: {lead.phone or '-'}",
        f"Service: {lead.service}",
        "Message:",
        lead.message or "-",
    ])

    # Only the first line of the address may reach a header
    reply_to = lead.email.splitlines()[0].strip() if lead.email else None
    return LeadEmail(subject=subject, html=html, text=text, reply_to=reply_to or None)


class SmtpTransport:
    """SMTP delivery; implicit TLS on port 465, STARTTLS otherwise"""

    name = "smtp"

    def __init__(
        self,
        host: Optional[str],
        port: int,
        user: Optional[str],
        password: Optional[str],
        sender: Optional[str],
        recipient: Optional[str],
        timeout: float = 15.0
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.recipient = recipient
        self.timeout = timeout

    def missing_settings(self) -> List[str]:
        required = {
            "SMTP_HOST": self.host,
            "SMTP_USER": self.user,
            "SMTP_PASS": self.password,
            "EMAIL_FROM": self.sender,
            "EMAIL_TO": self.recipient,
        }
        return [key for key, value in required.items() if not value]

    def _build_message(self, email: LeadEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = email.subject
        msg["From"] = self.sender
        msg["To"] = self.recipient
        if email.reply_to:
            msg["Reply-To"] = email.reply_to
        msg.set_content(email.text)
        msg.add_alternative(email.html, subtype="html")
        return msg

    def _send_blocking(self, email: LeadEmail) -> None:
        msg = self._build_message(email)
        if self.port == 465:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as server:
                server.login(self.user, self.password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.user, self.password)
                server.send_message(msg)

    async def send(self, email: LeadEmail) -> None:
        await asyncio.to_thread(self._send_blocking, email)


class ResendTransport:
    """Delivery through the Resend HTTP API"""

    name = "resend"

    def __init__(
        self,
        api_key: Optional[str],
        sender: Optional[str],
        recipient: Optional[str],
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.sender = sender
        self.recipient = recipient
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    def missing_settings(self) -> List[str]:
        required = {
            "RESEND_API_KEY": self.api_key,
            "EMAIL_FROM": self.sender,
            "EMAIL_TO": self.recipient,
        }
        return [key for key, value in required.items() if not value]

    async def send(self, email: LeadEmail) -> None:
        payload: Dict = {
            "from": self.sender,
            "to": [self.recipient],
            "subject": email.subject,
            "html": email.html,
            "text": email.text,
        }
        if email.reply_to:
            payload["reply_to"] = email.reply_to

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                self.api_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json"
                },
                json=payload
            )

        if response.status_code not in (200, 201):
            raise NotificationFailure(f"Resend responded {response.status_code}: {response.text}")


def build_transport(settings: Settings):
    """Create the configured outbound transport"""
    if settings.mail_transport == "resend":
        return ResendTransport(
            api_key=settings.resend_api_key,
            sender=settings.email_from,
            recipient=settings.email_to,
            api_url=settings.resend_api_url,
            timeout=settings.smtp_timeout_seconds
        )
    if settings.mail_transport == "smtp":
        return SmtpTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_pass,
            sender=settings.email_from,
            recipient=settings.email_to,
            timeout=settings.smtp_timeout_seconds
        )
    raise ValueError(f"Unknown MAIL_TRANSPORT: {settings.mail_transport}")


class NotificationDispatcher:
    """Sends accepted leads to the operator"""

    def __init__(self, transport, misconfig_policy: str = FAIL_ON_MISCONFIG):
        if misconfig_policy not in MISCONFIG_POLICIES:
            raise ValueError(f"Unknown MAIL_MISCONFIG_POLICY: {misconfig_policy}")
        self.transport = transport
        self.misconfig_policy = misconfig_policy

        missing = transport.missing_settings()
        if missing:
            logger.warning(
                f"Mail transport '{transport.name}' is missing {', '.join(missing)}; "
                f"leads will be {'rejected with 500' if misconfig_policy == FAIL_ON_MISCONFIG else 'acknowledged without email'}"
            )

    @classmethod
    def from_settings(cls, settings: Settings):
        return cls(build_transport(settings), settings.mail_misconfig_policy)

    async def dispatch(self, lead: LeadSubmission) -> NotificationResult:
        """
        Deliver one accepted lead

        Raises:
            Misconfigured: mail settings incomplete under the fail policy
            NotificationFailure: the transport errored
        """
        missing = self.transport.missing_settings()
        if missing:
            detail = f"Missing mail settings: {', '.join(missing)}"
            if self.misconfig_policy == FAIL_ON_MISCONFIG:
                raise Misconfigured(detail)
            logger.warning(f"Lead not emailed: {detail}")
            return NotificationResult(attempted=False, delivered=False, failure_detail=detail)

        email = render_lead_email(lead)

        try:
            # Let an in-flight send finish even if the client disconnects
            await asyncio.shield(self.transport.send(email))
        except NotificationFailure as e:
            logger.error(f"[MAIL ERROR] {e.detail}")
            raise
        except (smtplib.SMTPException, OSError, httpx.HTTPError, ValueError) as e:
            logger.error(f"[MAIL ERROR] {type(e).__name__}: {e}")
            raise NotificationFailure(f"{type(e).__name__}: {e}") from e

        logger.info(f"Lead notification sent via {self.transport.name}")
        return NotificationResult(attempted=True, delivered=True)
