"""Submission payload validation"""
import re
import logging
from typing import List

from email_validator import validate_email, EmailNotValidError

from lead_intake.errors import InvalidSubmission
from lead_intake.models.lead import LeadSubmission

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "email", "service")
TEXT_FIELDS = ("name", "email", "phone", "service", "message")

PHONE_PATTERN = re.compile(r"^[0-9+\-(). ]{7,20}$")


def _clean(value):
    if value is None:
        return None
    value = value.strip()
    return value or None


def check_strict_rules(submission: LeadSubmission) -> List[str]:
    """
    Format rules applied only when STRICT_FIELD_VALIDATION is on

    Returns:
        Names of fields that fail their format rule
    """
    invalid = []
    try:
        validate_email(submission.email, check_deliverability=False)
    except EmailNotValidError:
        invalid.append("email")

    if submission.phone and not PHONE_PATTERN.match(submission.phone):
        invalid.append("phone")

    return invalid


def validate_submission(submission: LeadSubmission, strict: bool = False) -> LeadSubmission:
    """
    Check required fields are present and non-blank after trimming

    Args:
        submission: Raw submission from the request body
        strict: Also apply the email/phone format rules

    Returns:
        A trimmed copy of the submission

    Raises:
        InvalidSubmission: naming every missing (or, in strict mode, malformed) field
    """
    cleaned = submission.model_copy(
        update={field: _clean(getattr(submission, field)) for field in TEXT_FIELDS}
    )

    missing = [field for field in REQUIRED_FIELDS if getattr(cleaned, field) is None]
    if missing:
        raise InvalidSubmission(missing=missing)

    if strict:
        invalid = check_strict_rules(cleaned)
        if invalid:
            raise InvalidSubmission(invalid=invalid)

    return cleaned
