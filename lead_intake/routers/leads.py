"""Lead intake endpoints"""
from fastapi import APIRouter, Depends, Request
import logging

from lead_intake.models.lead import LeadSubmission, LeadResponse
from lead_intake.services.lead_pipeline import LeadPipeline

logger = logging.getLogger(__name__)
router = APIRouter()


def get_pipeline(request: Request) -> LeadPipeline:
    """Pipeline built once at startup"""
    return request.app.state.pipeline


@router.post("", response_model=LeadResponse)
@router.post("/", response_model=LeadResponse, include_in_schema=False)
async def submit_lead(
    submission: LeadSubmission,
    request: Request,
    pipeline: LeadPipeline = Depends(get_pipeline)
):
    """Handle lead form submission (PUBLIC endpoint)"""
    remote_ip = request.client.host if request.client else None
    outcome = await pipeline.handle(submission, remote_ip=remote_ip)
    return outcome.to_response()
