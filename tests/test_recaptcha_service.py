from urllib.parse import parse_qs

import httpx
import pytest

from conftest import SiteverifyStub, make_settings
from lead_intake.services.recaptcha_service import (
    Disabled,
    Enforced,
    RecaptchaVerifier,
    VerificationVerdict,
    build_verification_policy,
)


def _verifier(stub, threshold=0.3, **settings):
    config = make_settings(recaptcha_min_score=threshold, **settings)
    return RecaptchaVerifier.from_settings(config, transport=stub.transport)


def test_missing_secret_selects_disabled_policy():
    assert isinstance(build_verification_policy(make_settings(recaptcha_secret=None)), Disabled)
    policy = build_verification_policy(make_settings(recaptcha_min_score=0.5))
    assert isinstance(policy, Enforced)
    assert policy.threshold == 0.5
    assert "test-secret" not in repr(policy)


@pytest.mark.asyncio
async def test_disabled_policy_accepts_without_network_call():
    stub = SiteverifyStub()
    verifier = _verifier(stub, recaptcha_secret=None)
    verdict = await verifier.verify(None)
    assert verdict.accepted
    assert verdict.reason == "skipped"
    assert stub.requests == []


@pytest.mark.asyncio
async def test_missing_token_rejected_without_network_call():
    stub = SiteverifyStub()
    verdict = await _verifier(stub).verify("  ")
    assert not verdict.accepted
    assert verdict.reason == "missing-token"
    assert stub.requests == []


@pytest.mark.asyncio
async def test_request_carries_secret_token_and_remote_ip():
    stub = SiteverifyStub()
    await _verifier(stub).verify("tok", remote_ip="203.0.113.7")
    assert len(stub.requests) == 1
    form = parse_qs(stub.requests[0].content.decode())
    assert form == {"secret": ["test-secret"], "response": ["tok"], "remoteip": ["203.0.113.7"]}


@pytest.mark.asyncio
async def test_success_false_rejects_regardless_of_score():
    stub = SiteverifyStub({"success": False, "score": 0.99, "error-codes": ["invalid-input-response"]})
    verdict = await _verifier(stub).verify("tok")
    assert not verdict.accepted
    assert verdict.reason == "recaptcha-failed"


@pytest.mark.asyncio
@pytest.mark.parametrize("threshold", [0.3, 0.5])
async def test_threshold_boundary_is_inclusive(threshold):
    below = await _verifier(SiteverifyStub({"success": True, "score": threshold - 0.01}), threshold).verify("tok")
    at = await _verifier(SiteverifyStub({"success": True, "score": threshold}), threshold).verify("tok")
    assert not below.accepted
    assert below.reason == "low-score"
    assert at.accepted


@pytest.mark.asyncio
async def test_success_without_score_is_accepted():
    verdict = await _verifier(SiteverifyStub({"success": True})).verify("tok")
    assert verdict.accepted
    assert verdict.score is None


@pytest.mark.asyncio
async def test_verifier_outage_rejects():
    stub = SiteverifyStub(error=httpx.ConnectTimeout("timed out"))
    verdict = await _verifier(stub).verify("tok")
    assert not verdict.accepted
    assert verdict.reason == "recaptcha-error"


@pytest.mark.asyncio
async def test_verifier_server_error_rejects():
    stub = SiteverifyStub({"error": "unavailable"}, status_code=503)
    verdict = await _verifier(stub).verify("tok")
    assert not verdict.accepted
    assert verdict.reason == "recaptcha-error"


@pytest.mark.asyncio
async def test_expected_action_mismatch_rejects():
    stub = SiteverifyStub({"success": True, "score": 0.9, "action": "login"})
    verdict = await _verifier(stub, recaptcha_expected_action="lead").verify("tok")
    assert not verdict.accepted
    assert verdict.reason == "action-mismatch"


@pytest.mark.parametrize("score", ["n/a", float("nan"), float("inf"), -0.1, 1.5, True])
def test_verdict_rejects_score_outside_unit_range(score):
    verdict = VerificationVerdict.from_siteverify({"success": True, "score": score}, 0.3)
    assert not verdict.accepted
    assert verdict.reason == "recaptcha-error"
    assert verdict.score is None


@pytest.mark.parametrize("score", [0.0, 1.0])
def test_verdict_accepts_unit_range_endpoints(score):
    verdict = VerificationVerdict.from_siteverify({"success": True, "score": score}, 0.0)
    assert verdict.accepted
    assert verdict.score == score


@pytest.mark.asyncio
async def test_nan_score_from_verifier_is_rejected():
    stub = SiteverifyStub()
    stub.handler = lambda request: httpx.Response(
        200, content=b'{"success": true, "score": NaN}', headers={"Content-Type": "application/json"}
    )
    verdict = await _verifier(stub).verify("tok")
    assert not verdict.accepted
    assert verdict.reason == "recaptcha-error"
