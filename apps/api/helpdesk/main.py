"""FastAPI application: middleware, error envelope, routers, health check."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from helpdesk.core.config import settings
from helpdesk.core.errors import HelpdeskError, QueueError
from helpdesk.core.rate_limit import limiter
from helpdesk.core.structured_logging import build_log_context, configure_logging
from helpdesk.db.session import engine
from helpdesk.routers import auth, batch, metrics, permissions, tickets, users

configure_logging()
logger = logging.getLogger(__name__)


def _init_sentry() -> None:
    """Error tracking outside dev, only when a DSN is configured."""
    if not settings.SENTRY_DSN or settings.ENV == "dev":
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        release=settings.VERSION,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # ticket text and emails stay out of Sentry
    )
    logger.info("Sentry initialized (env=%s)", settings.ENV)


_init_sentry()

app = FastAPI(
    title="Helpdesk API",
    description="Support ticket tracking with audited workflow",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # session cookie
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "X-Requested-With"],
)


# ============================================================================
# Error Responses: {"error": <tag>, "detail": <message>}
# ============================================================================

HTTP_ERROR_TAGS = {
    400: "BadRequest",
    401: "Unauthorized",
    403: "Forbidden",
    404: "NotFound",
    405: "MethodNotAllowed",
    409: "Conflict",
    422: "ValidationError",
    429: "RateLimited",
}


def _error_response(status_code: int, code: str, detail) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code, "detail": detail})


@app.exception_handler(HelpdeskError)
async def helpdesk_error_handler(request: Request, exc: HelpdeskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s: %s",
            exc.code,
            exc.message,
            extra=build_log_context(route=request.url.path, method=request.method),
        )
    return _error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(QueueError)
async def queue_error_handler(request: Request, exc: QueueError) -> JSONResponse:
    logger.error(
        "Task queue unavailable",
        exc_info=exc,
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    return _error_response(503, "QueueUnavailable", "Task queue is unavailable")


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.info(
        "Rate limit hit: %s",
        exc.detail,
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    return _error_response(429, HTTP_ERROR_TAGS[429], f"Rate limit exceeded: {exc.detail}")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _error_response(422, "ValidationError", errors)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_ERROR_TAGS.get(exc.status_code, "Error")
    return _error_response(exc.status_code, code, exc.detail)


# ============================================================================
# Routers
# ============================================================================

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
app.include_router(batch.router, prefix="/batch", tags=["batch"])
app.include_router(metrics.router, prefix="/metrics", tags=["metrics"])
app.include_router(permissions.router, prefix="/permissions", tags=["permissions"])


@app.get("/health", tags=["health"])
def health() -> dict:
    """Liveness plus a database round trip."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
