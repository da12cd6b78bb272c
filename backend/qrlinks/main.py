import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from .config import Settings, configure_logging, cors_origins_from_env
from .db import create_db_engine, make_session_factory, init_db
from .routes_qr import router as qr_router
from .qrcode_redirect import router as redirect_router
from .scans import ScanRecorder

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.

    Without explicit settings they are read from the environment when the
    lifespan starts, so a missing DATABASE_URL aborts startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or Settings.from_env()
        configure_logging(app_settings.log_level)
        if app_settings.uses_default_salt:
            logger.warning("IP_SALT is not set; using the development default salt. Set IP_SALT in production.")

        engine = create_db_engine(app_settings)
        init_db(engine)
        session_factory = make_session_factory(engine)

        app.state.settings = app_settings
        app.state.engine = engine
        app.state.session_factory = session_factory
        app.state.scan_recorder = ScanRecorder(session_factory, app_settings.ip_salt)
        logger.info("Database initialized")
        yield
        engine.dispose()
        logger.info("Database connections closed")

    app = FastAPI(title="QR Links API", lifespan=lifespan)

    # Middleware is fixed before startup, so CORS origins are read here rather than in the lifespan
    origins = settings.cors_origins if settings else cors_origins_from_env()
    app.add_middleware(CORSMiddleware, allow_origins=origins, allow_methods=["*"], allow_headers=["*"])

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        return response

    app.include_router(qr_router)
    app.include_router(redirect_router)

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health")
    def health_check(request: Request):
        """Liveness plus a cheap database round trip."""
        database = "ok"
        try:
            with request.app.state.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Health check database error: {e}")
            database = "unavailable"
        return {"status": "ok", "database": database}

    return app


app = create_app()
