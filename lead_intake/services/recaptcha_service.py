"""reCAPTCHA v3 bot-score verification"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
import logging
import math
import httpx

from lead_intake.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Disabled:
    """No secret configured: every submission passes (fails open)"""
    name: str = "disabled"


@dataclass(frozen=True)
class Enforced:
    """Secret configured: tokens are checked against a minimum score"""
    secret: str = field(repr=False)
    threshold: float = 0.3
    name: str = "enforced"


VerificationPolicy = Union[Disabled, Enforced]


def build_verification_policy(settings: Settings) -> VerificationPolicy:
    """Select the verification policy once from configuration presence"""
    if not settings.recaptcha_secret:
        logger.warning(
            "RECAPTCHA_SECRET is not set - bot verification is DISABLED and all submissions "
            "will be accepted without a reCAPTCHA check"
        )
        return Disabled()
    logger.info(f"reCAPTCHA verification enforced (min score {settings.recaptcha_min_score})")
    return Enforced(secret=settings.recaptcha_secret, threshold=settings.recaptcha_min_score)


@dataclass(frozen=True)
class VerificationVerdict:
    """Internal verdict, independent of the verifier's JSON field names"""
    accepted: bool
    reason: str
    score: Optional[float] = None
    raw_detail: Any = field(default=None, repr=False)

    @classmethod
    def from_siteverify(
        cls,
        payload: Dict[str, Any],
        threshold: float,
        expected_action: Optional[str] = None
    ) -> "VerificationVerdict":
        """
        Decode a siteverify response body

        Args:
            payload: JSON body returned by the verifier
            threshold: Minimum accepted score (inclusive)
            expected_action: Reject when the verifier reports a different action

        Returns:
            Verdict for the token
        """
        raw_score = payload.get("score")
        score = None
        if raw_score is not None and not isinstance(raw_score, bool):
            try:
                score = float(raw_score)
            except (TypeError, ValueError):
                score = None

        if payload.get("success") is not True:
            return cls(False, "recaptcha-failed", score, payload.get("error-codes"))

        # Scores live in [0, 1]; anything else is a malformed verifier answer
        if raw_score is not None and (score is None or not math.isfinite(score) or not 0.0 <= score <= 1.0):
            return cls(False, "recaptcha-error", None, payload)

        if expected_action and payload.get("action") != expected_action:
            return cls(False, "action-mismatch", score, payload.get("action"))

        # A missing score means the verifier only reported success
        if score is not None and score < threshold:
            return cls(False, "low-score", score, payload)

        return cls(True, "ok", score, payload)


class RecaptchaVerifier:
    """Calls the siteverify endpoint once per submission"""

    def __init__(
        self,
        policy: VerificationPolicy,
        verify_url: str,
        timeout: float = 10.0,
        expected_action: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.policy = policy
        self.verify_url = verify_url
        self.timeout = timeout
        self.expected_action = expected_action
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        return cls(
            policy=build_verification_policy(settings),
            verify_url=settings.recaptcha_verify_url,
            timeout=settings.recaptcha_timeout_seconds,
            expected_action=settings.recaptcha_expected_action,
            transport=transport
        )

    async def verify(self, token: Optional[str], remote_ip: Optional[str] = None) -> VerificationVerdict:
        """
        Verify a client token

        Verifier outages and timeouts reject the submission; they only differ
        from an explicit failure in the verdict reason.
        """
        if not isinstance(self.policy, Enforced):
            return VerificationVerdict(True, "skipped")

        if not token or not token.strip():
            return VerificationVerdict(False, "missing-token")

        form = {"secret": self.policy.secret, "response": token}
        if remote_ip:
            form["remoteip"] = remote_ip

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.verify_url, data=form)
            response.raise_for_status()
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError("siteverify returned a non-object body")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"reCAPTCHA verification error: {type(e).__name__}: {e}")
            return VerificationVerdict(False, "recaptcha-error", raw_detail=str(e))

        verdict = VerificationVerdict.from_siteverify(
            payload, self.policy.threshold, self.expected_action
        )
        if not verdict.accepted:
            logger.info(f"reCAPTCHA rejected submission: reason={verdict.reason} score={verdict.score}")
        return verdict
