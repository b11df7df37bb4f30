"""Health check endpoint"""
from datetime import datetime, timezone
from fastapi import APIRouter

from lead_intake.models.lead import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness plus current server time"""
    return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}
