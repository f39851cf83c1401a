import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.admin.router import router as admin_router
from app.auth.router import router as auth_router
from app.config import get_settings
from app.courses.router import router as courses_router
from app.database import init_db
from app.dependencies import close_redis
from app.enrollments.router import router as enrollments_router
from app.institution.router import router as institution_router
from app.profile.router import router as profile_router
from app.rate_limit import limiter
from app.reviews.router import router as reviews_router
from app.shortlist.router import router as shortlist_router
from shared.errors import ErrorKind
from shared.middleware import (
    RequestIdLogFilter,
    error_envelope_middleware,
    install_error_handlers,
    request_id_middleware,
)
from shared.middleware.error_handler import error_response

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:[%(request_id)s] %(message)s",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(RequestIdLogFilter())

logger = logging.getLogger(__name__)


# ── OpenAPI metadata ──────────────────────────────────────────────────────────

_DESCRIPTION = """
## CoachBay Marketplace Service

Matches aspirants with coaching institutions and their courses:

* **Accounts** — signup and login for aspirants, institutions and admins; email OTP.
* **Catalogue** — search, filter and sort published courses; trending and recommendations.
* **Course management** — institutions create courses (multipart, optional syllabus PDF),
  publish, promote, archive or cancel them.
* **Enrollment** — capacity-checked enrollment with a payment status per record.
* **Reviews** — one review per aspirant per course, admin moderation, helpfulness votes.
  Course ratings are recomputed from approved reviews on every moderation step.
* **Shortlist** — aspirants save courses with notes.
* **Admin** — institution verification, delisting (suspends every course), review queue.

### Authentication
```
Authorization: Bearer <access_token>
```

### Envelope
Success: `{"success": true, "data": ..., "message": ...}`
Failure: `{"success": false, "error": {"kind": ..., "message": ...}, "request_id": ...}`
"""

_TAGS_METADATA = [
    {"name": "Auth", "description": "Signup, login, password change and email OTP."},
    {"name": "Courses", "description": "Public catalogue and institution course management."},
    {"name": "Reviews", "description": "Course reviews, moderation and helpfulness votes."},
    {"name": "Enrollments", "description": "Enrollment and payment status."},
    {"name": "Shortlist", "description": "An aspirant's saved courses."},
    {"name": "Profile", "description": "Own account and institution pages."},
    {"name": "Institution", "description": "Dashboard for an institution's own data."},
    {"name": "Admin", "description": "Platform oversight. Admin role required."},
    {"name": "Health", "description": "Liveness probe."},
]


class HealthResponse(BaseModel):
    status: str
    service: str


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded):
    response = error_response(
        request, ErrorKind.RATE_LIMITED, f"Rate limit exceeded: {exc.detail}"
    )
    view_limit = getattr(request.state, "view_rate_limit", None)
    if view_limit is not None:
        response = request.app.state.limiter._inject_headers(response, view_limit)
    return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    init_db(settings.marketplace_database_url)
    logger.info("Marketplace service starting (%s)", settings.env_name)
    yield
    await close_redis()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="CoachBay Marketplace Service",
        version="1.0.0",
        description=_DESCRIPTION,
        openapi_tags=_TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
    install_error_handlers(app)

    # Middleware is applied in reverse-registration order (last added = outermost).
    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(error_envelope_middleware)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )

    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(profile_router, prefix="/api/v1")
    app.include_router(courses_router, prefix="/api/v1")
    app.include_router(reviews_router, prefix="/api/v1")
    app.include_router(enrollments_router, prefix="/api/v1")
    app.include_router(shortlist_router, prefix="/api/v1")
    app.include_router(institution_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health() -> HealthResponse:
        """Lightweight liveness probe. Does not hit the database."""
        return HealthResponse(status="ok", service="marketplace")

    return app


app = create_app()
