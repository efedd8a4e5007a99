"""
IPTV Revenda Backend
Thin orchestration layer over Supabase (auth + rows), Mercado Pago and SMTP
"""

from pathlib import Path
import asyncio
import logging
import time
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from auth import auth_router
from backend.utils.responses import error_response
from config import settings, IS_PRODUCTION
from jobs.expiration_job import run_periodically
from routers.admin_router import admin_router
from routers.notifications_router import notifications_router
from routers.orders_router import orders_router, payment_router
from routers.plans_router import plans_router
from routers.trial_router import trial_router
from routers.webhook_router import webhook_router
from utils.shared_utils import utcnow, to_iso

# ============================================================================
# LOGGING
# ============================================================================

# Write all events to logs/app.log and stderr
LOGS_DIR = Path("./logs")
LOGS_DIR.mkdir(exist_ok=True)
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# ============================================================================
# FASTAPI APP SETUP
# ============================================================================

app = FastAPI(title="IPTV Revenda API")


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception on {request.method} {request.url.path}: {e}\n{traceback.format_exc()}")
            return error_response("Erro interno do servidor", status=500)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request: method, path, status, duration"""
    async def dispatch(self, request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
        return response


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses: CSP, HSTS, X-Frame-Options, X-Content-Type-Options"""
    async def dispatch(self, request, call_next):
        response = await call_next(request)

        # JSON API only: nothing may be loaded from a response
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        # HTTPS is guaranteed only in production
        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "no-referrer"

        return response


app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(UncaughtExceptionMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# ERROR BODIES: always {"error": <message>}
# ============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    response = error_response(message, status=exc.status_code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Dados inválidos")
    else:
        message = "Dados inválidos"
    logger.info(f"Validation error on {request.method} {request.url.path}: {errors}")
    return error_response(message, status=400)

# ============================================================================
# STARTUP CHECKS - ENV KEYS
# ============================================================================

# Environment variable name -> configured value
REQUIRED_KEY_MAP = {
    "SUPABASE_URL": settings.supabase_url,
    "SUPABASE_SERVICE_ROLE_KEY": settings.supabase_service_role_key,
    "MP_ACCESS_TOKEN": settings.mp_access_token,
    "MP_WEBHOOK_SECRET": settings.mp_webhook_secret,
    "SMTP_HOST": settings.smtp_host,
    "SMTP_USER": settings.smtp_user,
}


@app.on_event("startup")
async def validate_keys():
    """Report missing integration keys (non-fatal)"""
    missing = [key for key, value in REQUIRED_KEY_MAP.items() if not value]
    if missing:
        logger.warning(f"Missing environment variables: {', '.join(missing)}")
    else:
        logger.info("All integration keys loaded")


@app.on_event("startup")
async def start_expiration_job():
    if not settings.expiration_job_enabled:
        return
    app.state.expiration_task = asyncio.create_task(run_periodically())
    logger.info(f"Expiration warning job scheduled every {settings.expiration_job_interval_hours}h")


@app.on_event("shutdown")
async def stop_expiration_job():
    task = getattr(app.state, "expiration_task", None)
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass

# ============================================================================
# INCLUDE ROUTERS
# ============================================================================
app.include_router(webhook_router)
app.include_router(auth_router)
app.include_router(plans_router)
app.include_router(orders_router)
app.include_router(payment_router)
app.include_router(trial_router)
app.include_router(notifications_router)
app.include_router(admin_router)


@app.get("/health")
async def health():
    return {"status": "ok", "timestamp": to_iso(utcnow())}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3001)
