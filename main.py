"""NutriScan API - account lifecycle backend."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.rate_limit import limiter
from app.routers import auth_router, users_router, verification_router
from app.services.notifier import shutdown_dispatcher

APP_VERSION = "1.0.0"

# Logging
logger = logging.getLogger("nutriscan")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    for warning in settings.validate():
        logger.warning("Config: %s", warning)
    logger.info("NutriScan API %s starting (env=%s)", APP_VERSION, settings.APP_ENV)
    yield
    shutdown_dispatcher()


app = FastAPI(title="NutriScan API", version=APP_VERSION, lifespan=lifespan)
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        response.headers["Cache-Control"] = "no-store"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = 1024 * 1024  # 1MB, JSON bodies only

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(
                status_code=413,
                content={"success": False, "code": "PAYLOAD_TOO_LARGE", "message": "Request body too large"},
            )
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PREFIXES = ("/api/auth/", "/api/users", "/api/verify/")

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        # Token-bearing paths are logged without the token segment
        path = request.url.path
        method = request.method
        if method in ("POST", "PUT", "DELETE") and path.startswith(self.AUDIT_PREFIXES):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                route_template(request),
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


def route_template(request: Request) -> str:
    """The matched route pattern, e.g. /api/auth/password-reset/reset/{token}."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)

# API routers
app.include_router(auth_router)
app.include_router(verification_router)
app.include_router(users_router)


def error_response(status_code: int, code: str, message: str, details: list | None = None) -> JSONResponse:
    content = {"success": False, "code": code, "message": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


# --- Rate limit error handler ---
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded."""
    return error_response(429, "RATE_LIMITED", "Rate limit exceeded. Try again later.")


# --- HTTP errors: always the structured error body ---
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP exceptions as {success, code, message, details}."""
    if isinstance(exc.detail, dict):
        response = error_response(
            exc.status_code,
            exc.detail.get("code", "ERROR"),
            exc.detail.get("message", ""),
            exc.detail.get("details"),
        )
    elif exc.status_code == 404:
        response = error_response(404, "NOT_FOUND", f"Route {request.method} {request.url.path} does not exist")
    else:
        response = error_response(exc.status_code, "ERROR", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


# --- Malformed request bodies ---
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed input with 400 and one message per problem."""
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "Invalid value")
        details.append(f"{location}: {message}" if location else message)
    return error_response(400, "VALIDATION_ERROR", "Invalid request data", details)


# --- Anything else: generic 500 ---
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and hide their details outside debug mode."""
    logger.exception("Unhandled error on %s %s", request.method, route_template(request))
    message = str(exc) if get_settings().DEBUG else "An internal error occurred"
    return error_response(500, "INTERNAL_ERROR", message)


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "nutriscan-api", "version": APP_VERSION}


@app.get("/")
def index() -> dict:
    """API landing endpoint."""
    return {
        "message": "Welcome to the NutriScan API",
        "version": APP_VERSION,
        "endpoints": {
            "auth": "/api/auth",
            "verify": "/api/verify",
            "users": "/api/users",
            "health": "/api/health",
        },
    }
