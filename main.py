import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from core.errors import AppError
from db import dispose_engine
from api.auth.views import router as auth_router
from api.permission_requests.views import router as permission_requests_router
from api.audit_logs.views import router as audit_logs_router
from api.admin.views import router as admin_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


def get_cors_origins() -> list[str]:
    """Get CORS origins from settings or use defaults."""
    cors_env = settings.CORS_ORIGINS

    # Try to parse as JSON array
    if cors_env:
        try:
            origins = json.loads(cors_env)
            if isinstance(origins, list):
                return origins
        except json.JSONDecodeError:
            # If not valid JSON, treat as comma-separated
            return [o.strip() for o in cors_env.split(",") if o.strip()]

    # Default origins for local development
    return [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Council Management API (env=%s)", settings.APP_ENV)
    yield
    await dispose_engine()


app = FastAPI(
    title="Council Management API",
    description="Authentication, role-based access control, permission requests and audit trail",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, message: str, extra: dict | None = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **(extra or {})},
        headers=headers,
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message, exc.extra, exc.headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    if errors and errors[0].get("loc"):
        field = errors[0]["loc"][-1]
        message = f"{field}: {message}"
    return _error_response(400, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, "Internal server error")


# Authentication and account endpoints
app.include_router(auth_router, prefix="/api/v1")
app.include_router(permission_requests_router, prefix="/api/v1")

# Administration endpoints
app.include_router(audit_logs_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


# Health check endpoint
@app.get("/health", tags=["system"])
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}
