"""
ADMINGUARD API - Main Application Entry Point

FastAPI request layer for the admin access-control and audit core.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adminguard.api.config import settings, setup_logging
from adminguard.api.db.session import check_db, close_db, init_db
from adminguard.api.exceptions import AdminGuardError, is_critical, is_recoverable


logger = logging.getLogger("ADMINGUARD_App")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION}")
    await init_db()
    yield
    await close_db()


async def admin_error_handler(request: Request, exc: AdminGuardError) -> JSONResponse:
    """Last-resort mapping for core errors that escaped an executor."""
    if is_critical(exc):
        logger.critical(f"{request.method} {request.url.path}: {exc}")
    else:
        logger.error(f"{request.method} {request.url.path}: {exc}")

    code = status.HTTP_503_SERVICE_UNAVAILABLE
    if not is_recoverable(exc) and not is_critical(exc):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=code, content={"detail": "action failed"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="ADMINGUARD - Admin access control and audit trail",
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_exception_handler(AdminGuardError, admin_error_handler)

    from adminguard.api.admin.routes import router as admin_router

    app.include_router(admin_router, prefix="/api/v1/admin", tags=["Admin"])

    @app.get("/api/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "service": settings.APP_NAME,
        }

    @app.get("/api/health/ready", tags=["Health"])
    async def readiness_check():
        if not await check_db():
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unavailable", "database": False},
            )
        return {"status": "ready", "database": True}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "adminguard.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
