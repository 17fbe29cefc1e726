"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from volunteer_connect.core.config import settings
from volunteer_connect.core.middleware import setup_middleware
from volunteer_connect.core.rate_limiter import limiter
from volunteer_connect.core.exceptions import VolunteerConnectError
from volunteer_connect.schemas.schemas import fail

from volunteer_connect.api.auth import router as auth_router
from volunteer_connect.api.users import router as users_router
from volunteer_connect.api.activities import router as activities_router
from volunteer_connect.api.roles import router as roles_router
from volunteer_connect.api.permissions import router as permissions_router
from volunteer_connect.api.chat import router as chat_router
from volunteer_connect.api.admin import router as admin_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("volunteer_connect")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API", settings.APP_NAME)
    from volunteer_connect.services.email_service import email_service
    from volunteer_connect.services.chat_service import chat_service
    if not email_service.is_configured:
        logger.warning("SMTP not configured, password reset emails will not be sent")
    if not chat_service.is_configured:
        logger.warning("OPENAI_API_KEY not set, AI chat is disabled")

    yield

    logger.info("Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title="Volunteer Connect API",
    description="Connects volunteers with organizations: activities, tasks, roles and an AI helper",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)

# Rate limiting
app.state.limiter = limiter


@app.exception_handler(VolunteerConnectError)
async def domain_exception_handler(request: Request, exc: VolunteerConnectError):
    return JSONResponse(status_code=exc.status_code, content=fail(exc.message))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=fail(detail),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=400, content=fail(message))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content=fail(f"Too many requests: {exc.detail}"),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=fail("Internal server error"))


# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(activities_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(permissions_router, prefix="/api")
app.include_router(chat_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Quick health check endpoint."""
    return {"success": True, "status": "ok"}
