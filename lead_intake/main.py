"""Main FastAPI application"""
from typing import Optional
from fastapi import FastAPI
import logging

from lead_intake.config import Settings, get_settings
from lead_intake.middleware.cors import build_origin_policy, setup_cors
from lead_intake.middleware.error_handler import ErrorHandlerMiddleware, register_exception_handlers
from lead_intake.routers import health, leads
from lead_intake.services.lead_pipeline import LeadPipeline
from lead_intake.services.notification_service import NotificationDispatcher
from lead_intake.services.recaptcha_service import RecaptchaVerifier

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    verifier: Optional[RecaptchaVerifier] = None,
    dispatcher: Optional[NotificationDispatcher] = None
) -> FastAPI:
    """
    Build the application and its pipeline from one immutable settings object

    Args:
        settings: Configuration (defaults to the cached environment settings)
        verifier: Override the reCAPTCHA verifier (tests)
        dispatcher: Override the notification dispatcher (tests)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Lead Intake API",
        description="Public lead form intake with reCAPTCHA verification and email relay",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    verifier = verifier or RecaptchaVerifier.from_settings(settings)
    dispatcher = dispatcher or NotificationDispatcher.from_settings(settings)
    app.state.pipeline = LeadPipeline.from_settings(settings, verifier, dispatcher)

    # Setup origin gate + CORS
    setup_cors(app, build_origin_policy(settings))

    # Add error handling middleware
    app.add_middleware(ErrorHandlerMiddleware)
    register_exception_handlers(app)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Lead Intake API",
            "version": VERSION,
            "docs": "/docs"
        }

    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(leads.router, prefix="/api/leads", tags=["Leads"])

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    logger.info(f"Lead intake backend listening on {settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)
