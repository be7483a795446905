"""HTTP routes between the editor UI and the VCS providers."""

import json
import logging
from dataclasses import dataclass

import httpx
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from trailvcs import (
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    UnsupportedProviderError,
    UpstreamError,
    ValidationError,
    VCSError,
    VCSProvider,
    VCSSettings,
    get_provider,
    is_supported_provider,
)
from trailvcs.trails import serialize_trail

from .backends import (
    AllowAllRateLimiter,
    AllowAllSubscriptions,
    HeaderSessionBackend,
    RateLimiter,
    SessionBackend,
    SubscriptionBackend,
)
from .models import CommitRequest

logger = logging.getLogger(__name__)

RATE_WINDOW_SECONDS = 60
READ_LIMIT = 30
COMMIT_LIMIT = 10

# Subclasses first: ForbiddenError is an AuthError
ERROR_STATUS: list[tuple[type[VCSError], int]] = [
    (ValidationError, 400),
    (ForbiddenError, 403),
    (AuthError, 401),
    (NotFoundError, 404),
    (ConflictError, 409),
    (RateLimitedError, 429),
    (UpstreamError, 502),
]


class ApiError(Exception):
    """Request rejected by the route layer itself."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass
class Services:
    """Collaborators shared by the route handlers."""

    settings: VCSSettings
    sessions: SessionBackend
    rate_limiter: RateLimiter
    subscriptions: SubscriptionBackend
    transport: httpx.BaseTransport | None = None


def status_for(error: VCSError) -> int:
    """HTTP status for a VCS error."""
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def get_services(request: Request) -> Services:
    return request.app.state.services


def authorize(request: Request, services: Services, rate_key: str, limit: int) -> VCSProvider:
    """
    Run the per-request checks and build the session's provider.

    Checks run in order: signed-in user, active subscription, rate limit,
    connected provider, supported provider type.
    """
    session = services.sessions.get_session(request)
    if session is None:
        raise ApiError(401, "Unauthorized")

    status = services.subscriptions.get_status(session.user_id)
    if status.is_expired:
        raise ApiError(403, "Trial expired, please upgrade to continue")
    if not status.is_pro:
        raise ApiError(403, "Pro subscription required")

    limit_result = services.rate_limiter.allowed(
        f"{rate_key}:{session.user_id}", limit, RATE_WINDOW_SECONDS
    )
    if not limit_result.allowed:
        raise ApiError(429, "Too many requests")

    if not session.access_token or not session.provider_type:
        raise ApiError(401, "No VCS provider connected")
    if not is_supported_provider(session.provider_type):
        raise UnsupportedProviderError(f"Unsupported VCS provider: {session.provider_type}")

    return get_provider(
        session.provider_type,
        session.access_token,
        settings=services.settings,
        transport=services.transport,
    )


router = APIRouter(prefix="/api/vcs", tags=["vcs"])


@router.get("/repos")
def list_repos(request: Request, services: Services = Depends(get_services)):
    provider = authorize(request, services, "vcs", READ_LIMIT)
    repos = provider.list_repos()
    return {"repos": [r.model_dump() for r in repos], "provider": provider.name}


@router.get("/branches")
def list_branches(
    request: Request,
    owner: str | None = None,
    repo: str | None = None,
    services: Services = Depends(get_services),
):
    if not owner or not repo:
        raise ValidationError("Missing owner or repo parameter")
    provider = authorize(request, services, "vcs", READ_LIMIT)
    return {"branches": provider.list_branches(owner, repo)}


@router.get("/trails")
def get_trails(
    request: Request,
    owner: str | None = None,
    repo: str | None = None,
    path: str | None = None,
    branch: str | None = None,
    services: Services = Depends(get_services),
):
    if not owner or not repo:
        raise ValidationError("Missing owner or repo parameter")
    provider = authorize(request, services, "vcs", READ_LIMIT)

    if path:
        trail = provider.get_trail(owner, repo, path, branch or None)
        try:
            content = json.loads(trail.content)
        except ValueError:
            raise ApiError(422, f"Trail file is not valid JSON: {path}") from None
        return {"content": content, "sha": trail.sha}

    trails = provider.get_trails(owner, repo, branch or None)
    return {"trails": [t.model_dump(exclude={"content_base64"}) for t in trails]}


@router.post("/commit")
def commit(request: Request, body: CommitRequest, services: Services = Depends(get_services)):
    if not (body.owner and body.repo and body.path and body.content is not None and body.message):
        raise ValidationError("Missing required fields")
    provider = authorize(request, services, "vcs-commit", COMMIT_LIMIT)

    if body.create_pr:
        pr = provider.create_trail_pr(
            body.owner, body.repo, body.content, body.path, body.pr_title or body.message
        )
        return {"success": True, "type": "pr", "pr": {"number": pr.number, "url": pr.url}}

    result = provider.commit_file(
        body.owner, body.repo, body.path, serialize_trail(body.content), body.message, body.sha
    )
    return {"success": True, "type": "commit", "commit": {"sha": result.sha, "url": result.url}}


def create_app(
    settings: VCSSettings | None = None,
    sessions: SessionBackend | None = None,
    rate_limiter: RateLimiter | None = None,
    subscriptions: SubscriptionBackend | None = None,
    transport: httpx.BaseTransport | None = None,
) -> FastAPI:
    """
    Build the Trailguide API application.

    Args:
        settings: VCS settings (default: read from the environment)
        sessions: Auth backend (default: request headers)
        rate_limiter: Shared rate limiter (default: allow all)
        subscriptions: Billing backend (default: everyone is Pro)
        transport: Custom httpx transport for the providers

    Returns:
        FastAPI application
    """
    app = FastAPI(title="Trailguide")
    app.state.services = Services(
        settings=settings or VCSSettings(),
        sessions=sessions or HeaderSessionBackend(),
        rate_limiter=rate_limiter or AllowAllRateLimiter(),
        subscriptions=subscriptions or AllowAllSubscriptions(),
        transport=transport,
    )

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(VCSError)
    async def vcs_error_handler(request: Request, exc: VCSError) -> JSONResponse:
        status = status_for(exc)
        level = logging.ERROR if status >= 500 else logging.INFO
        logger.log(level, "%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse({"error": exc.message}, status_code=status)

    app.include_router(router)
    return app
