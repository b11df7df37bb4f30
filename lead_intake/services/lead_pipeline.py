"""Lead admission pipeline: validate -> verify -> notify"""
from dataclasses import dataclass
from typing import Optional
import logging

from lead_intake.config import Settings
from lead_intake.errors import InvalidSubmission, VerificationRejected
from lead_intake.models.lead import LeadSubmission
from lead_intake.services.notification_service import NotificationDispatcher, NotificationResult
from lead_intake.services.recaptcha_service import RecaptchaVerifier
from lead_intake.services.validation import validate_submission

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeadOutcome:
    lead: LeadSubmission
    notification: NotificationResult

    @property
    def message(self) -> str:
        return "Lead sent" if self.notification.delivered else "Lead received"

    def to_response(self) -> dict:
        return {
            "ok": True,
            "message": self.message,
            "notification": {
                "attempted": self.notification.attempted,
                "delivered": self.notification.delivered,
            },
            "lead": self.lead.public_fields(),
        }


class LeadPipeline:
    """
    Runs one submission through the admission gates

    The origin check happens earlier, in OriginGateMiddleware. Each gate either
    passes the submission on or raises a LeadIntakeError; nothing is retried.
    """

    def __init__(
        self,
        verifier: RecaptchaVerifier,
        dispatcher: NotificationDispatcher,
        strict_validation: bool = False,
        reject_status: int = 400
    ):
        self.verifier = verifier
        self.dispatcher = dispatcher
        self.strict_validation = strict_validation
        self.reject_status = reject_status

    @classmethod
    def from_settings(cls, settings: Settings, verifier: RecaptchaVerifier, dispatcher: NotificationDispatcher):
        if settings.verification_reject_status not in (400, 403):
            raise ValueError("VERIFICATION_REJECT_STATUS must be 400 or 403")
        return cls(
            verifier=verifier,
            dispatcher=dispatcher,
            strict_validation=settings.strict_field_validation,
            reject_status=settings.verification_reject_status
        )

    async def handle(self, submission: LeadSubmission, remote_ip: Optional[str] = None) -> LeadOutcome:
        try:
            lead = validate_submission(submission, strict=self.strict_validation)
        except InvalidSubmission as e:
            logger.info(f"Lead rejected: invalid submission ({e.detail})")
            raise

        verdict = await self.verifier.verify(submission.recaptcha_token, remote_ip)
        if not verdict.accepted:
            logger.info(f"Lead rejected: verification failed ({verdict.reason})")
            raise VerificationRejected(verdict.reason, status_code=self.reject_status)

        logger.debug(f"Lead verified for {lead.email} (score={verdict.score})")

        notification = await self.dispatcher.dispatch(lead)
        outcome = LeadOutcome(lead=lead, notification=notification)
        logger.info(f"Lead accepted: service={lead.service!r} delivered={notification.delivered}")
        return outcome
