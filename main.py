"""
main.py
-------
ASGI entry point for the law-firm platform API.

Request path: CORS -> route guard (tenant rewrite, redirects, identity
headers) -> router. Every error leaves as {"error": <message>} with the
status of the raised AppError; validation failures are 400.

    uvicorn main:app --reload
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

import lawfirm.models  # noqa: F401  (registers every mapper)
from lawfirm.api.routes import ai, auth, documents, invitations, pages
from lawfirm.core.config import settings
from lawfirm.core.errors import AppError
from lawfirm.core.logging import configure_logging, get_logger
from lawfirm.db.session import engine
from lawfirm.middleware.route_guard import route_guard_middleware
from lawfirm.services.mlflow_service import setup_mlflow

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    configure_logging()
    setup_mlflow()
    logger.info(
        "API starting",
        env=settings.APP_ENV,
        llm_mock=not settings.OPENAI_API_KEY,
        email_enabled=bool(settings.RESEND_API_KEY),
        sms_enabled=bool(settings.TWILIO_ACCOUNT_SID),
    )
    yield
    logger.info("API stopping")
    await engine.dispose()


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Multi-tenant law firm backend: client intake, invitations, "
            "documents, AI document analysis and a client portal chatbot."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware (last added runs first) ───────────────────────────────────
    app.middleware("http")(route_guard_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(invitations.router)
    app.include_router(ai.router)
    app.include_router(documents.router)
    app.include_router(pages.router)

    # ── Global Exception Handlers ─────────────────────────────────────────────

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                path=request.url.path,
                error=exc.message,
                cause=str(exc.__cause__) if exc.__cause__ else None,
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info("Invalid input", path=request.url.path, errors=len(exc.errors()))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid input data"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Liveness and database check")
    async def health() -> JSONResponse:
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            database = "ok"
        except SQLAlchemyError as exc:
            logger.error("Health check database failure", error=str(exc))
            database = "unavailable"
        healthy = database == "ok"
        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "ok" if healthy else "degraded", "database": database, "env": settings.APP_ENV},
        )

    return app


app = create_application()
