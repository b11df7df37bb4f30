"""Origin gate and CORS middleware configuration"""
from dataclasses import dataclass
from typing import FrozenSet, Optional
from urllib.parse import urlsplit
import re
import logging

from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from lead_intake.config import Settings
from lead_intake.errors import AccessDenied

logger = logging.getLogger(__name__)

ALLOW_ALL = "allow-all"
ALLOW_LIST = "allow-list"
ALLOW_PATTERN = "allow-pattern"

# Paths that are never subject to the origin gate
UNGATED_PATHS = ("/api/health",)


@dataclass(frozen=True)
class OriginDecision:
    allowed: bool
    origin: Optional[str]
    policy: str


@dataclass(frozen=True)
class OriginPolicy:
    """
    Which browser origins may call the API

    A request without an Origin header (curl, uptime checks, server-to-server)
    is always admitted, even by an empty allow-list.
    """
    kind: str
    origins: FrozenSet[str] = frozenset()
    domain: Optional[str] = None

    def _matches_domain(self, origin: str) -> bool:
        parts = urlsplit(origin)
        host = (parts.hostname or "").lower()
        if parts.scheme not in ("http", "https") or not host:
            return False
        return host == self.domain or host.endswith("." + self.domain)

    def decide(self, origin: Optional[str]) -> OriginDecision:
        if not origin or self.kind == ALLOW_ALL:
            return OriginDecision(True, origin, self.kind)
        if self.kind == ALLOW_PATTERN:
            return OriginDecision(self._matches_domain(origin), origin, self.kind)
        return OriginDecision(origin in self.origins, origin, self.kind)

    def cors_options(self) -> dict:
        """Keyword arguments for Starlette's CORSMiddleware"""
        if self.kind == ALLOW_ALL:
            return {"allow_origins": ["*"]}
        if self.kind == ALLOW_PATTERN:
            return {"allow_origin_regex": rf"(?i)https?://([A-Za-z0-9-]+\.)*{re.escape(self.domain)}(:\d+)?"}
        return {"allow_origins": sorted(self.origins)}


def build_origin_policy(settings: Settings) -> OriginPolicy:
    """Select exactly one origin policy from configuration"""
    kind = settings.cors_policy
    if not kind:
        if settings.cors_origins.strip() == "*":
            kind = ALLOW_ALL
        elif settings.cors_origin_domain:
            kind = ALLOW_PATTERN
        else:
            kind = ALLOW_LIST

    if kind == ALLOW_PATTERN:
        domain = (settings.cors_origin_domain or "").strip().lower().lstrip(".")
        if not domain:
            raise ValueError("CORS_POLICY=allow-pattern requires CORS_ORIGIN_DOMAIN")
        policy = OriginPolicy(kind=ALLOW_PATTERN, domain=domain)
    elif kind == ALLOW_LIST:
        policy = OriginPolicy(kind=ALLOW_LIST, origins=frozenset(settings.cors_origin_list))
        if not policy.origins:
            logger.warning("CORS allow-list is empty - all browser origins will be rejected")
    elif kind == ALLOW_ALL:
        policy = OriginPolicy(kind=ALLOW_ALL)
    else:
        raise ValueError(f"Unknown CORS_POLICY: {kind}")

    logger.info(f"Origin policy: {policy.kind}")
    return policy


class OriginGateMiddleware(BaseHTTPMiddleware):
    """Rejects disallowed origins before any route runs"""

    def __init__(self, app, policy: OriginPolicy):
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNGATED_PATHS:
            return await call_next(request)

        decision = self.policy.decide(request.headers.get("origin"))
        if not decision.allowed:
            error = AccessDenied(decision.origin)
            logger.info(f"{error.detail} ({decision.policy})")
            return JSONResponse(status_code=error.status_code, content=error.to_response())

        return await call_next(request)


def setup_cors(app, policy: OriginPolicy):
    """
    Configure CORS handling for the application

    Args:
        app: FastAPI application instance
        policy: Origin policy selected at startup
    """
    # Starlette runs the last-added middleware first, so the gate wraps CORS
    app.add_middleware(
        CORSMiddleware,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        **policy.cors_options()
    )
    app.add_middleware(OriginGateMiddleware, policy=policy)
