"""
Flip Oracle main application entry point.
FastAPI service that settles coin-flip bets for the on-chain ledger and keeps
the off-chain points ledger.
"""

import sys
from pathlib import Path

# Add parent directory to path so imports work when running directly
if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
import uvicorn

from flip_oracle.core.logger import init_logging, get_logger
from flip_oracle.config import settings
from flip_oracle.core.exceptions import OracleError
from flip_oracle.core.resolver import get_resolver
from flip_oracle.core.scheduler import SweepScheduler
from flip_oracle.core.security import limiter
from flip_oracle.routers import admin, oracle, users

# Initialize logging first
init_logging(
    level=settings.logging.level,
    log_to_file=settings.logging.log_to_file,
    formatter=settings.logging.formatter,
    log_file_path=settings.paths.get_log_path(),
    secrets=(settings.oracle.signing_key, settings.oracle.server_secret, settings.oracle.cron_secret),
)
logger = get_logger("main")

sweep_scheduler = SweepScheduler(get_resolver, settings.sweep)


# ==================== Security Headers Middleware ====================


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response


# ==================== Exception Handlers ====================


async def oracle_error_handler(request: Request, exc: OracleError):
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return ORJSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())[1:]) or 'body'}: {err.get('msg')}" for err in errors
    )
    return ORJSONResponse(status_code=400, content={"error": "Invalid request", "message": message})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return ORJSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions gracefully."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return ORJSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc) if settings.server.debug else None,
        },
    )


# ==================== Application Setup ====================


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.server.name,
        docs_url="/docs" if settings.server.debug else None,
        redoc_url=None,
        default_response_class=ORJSONResponse,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(OracleError, oracle_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(oracle.router, prefix="/api")
    app.include_router(users.router, prefix="/api")
    app.include_router(admin.router, prefix="/admin")

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "message": "Server is running"}

    @app.on_event("startup")
    async def startup_event():
        sweep_scheduler.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        sweep_scheduler.shutdown()

    return app


app = create_app()

logger.info(f"Application '{settings.server.name}' initialized")
logger.info(f"Debug mode: {settings.server.debug}")
logger.info(f"Ledger backend: {settings.oracle.ledger_backend} ({settings.oracle.contract_version})")


# ==================== Main Entry Point ====================

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Flip Oracle server")
    parser.add_argument(
        "--sweep-once",
        action="store_true",
        help="Run a single sweep against the configured ledger and exit",
    )
    args = parser.parse_args()

    if args.sweep_once:
        import asyncio

        import orjson

        report = asyncio.run(get_resolver().sweep())
        print(orjson.dumps(report.to_dict(), option=orjson.OPT_INDENT_2).decode())
        sys.exit(0)

    logger.info(f"Starting server on {settings.server.host}:{settings.server.port}")
    uvicorn.run(
        "flip_oracle.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.debug,
    )
