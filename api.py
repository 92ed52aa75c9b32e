import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import FastAPI, Request
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from database import get_db_connection
from library import Library
from logging_config import setup_logging
from routes import bookinstance_router, genre_router
from routes.common import get_library, redirect, render

logger = logging.getLogger(__name__)


class HealthModel(BaseModel):
    status: str
    timestamp: str
    db: bool
    counts: Dict[str, int]


def create_app(db_file: Optional[str] = None) -> FastAPI:
    """Build the catalog web app.

    The store is opened in the lifespan hook, so ``db_file`` (or
    ``settings.data_file``) is only touched once the app starts serving.
    """
    setup_logging(settings.log_level, settings.log_file)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.library = Library(db_file=db_file or settings.data_file)
        logger.info(f"Catalog database ready at {app.state.library.db_file}")
        yield
        logger.info("Catalog app shutting down")

    app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug, lifespan=lifespan)

    # --- Security headers ---
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    # --- Error pages ---
    @app.exception_handler(StarletteHTTPException)
    async def http_error_page(request: Request, exc: StarletteHTTPException):
        return render(
            request,
            "error.html",
            status_code=exc.status_code,
            title="Error",
            message=exc.detail,
            code=exc.status_code,
        )

    @app.exception_handler(sqlite3.Error)
    async def store_error_page(request: Request, exc: sqlite3.Error):
        logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
        return render(
            request,
            "error.html",
            status_code=500,
            title="Error",
            message="Internal Server Error",
            code=500,
        )

    app.include_router(genre_router)
    app.include_router(bookinstance_router)

    @app.get("/")
    async def root():
        return redirect("/catalog")

    @app.get("/catalog")
    def catalog_index(request: Request):
        """Home page with record counts."""
        stats = get_library(request).get_statistics()
        return render(request, "catalog_index.html", title="Local Library Home", app_name=settings.app_name,
                      stats=stats)

    @app.get("/health", response_model=HealthModel)
    def health(request: Request):
        """Lightweight health check: a quick database round trip plus record counts."""
        library = get_library(request)
        db_ok = True
        try:
            conn = get_db_connection(library.db_file)
            conn.execute("SELECT 1")
            conn.close()
        except sqlite3.Error:
            db_ok = False
        return HealthModel(
            status="healthy" if db_ok else "degraded",
            timestamp=datetime.now(timezone.utc).isoformat(),
            db=db_ok,
            counts=library.get_statistics() if db_ok else {},
        )

    return app


app = create_app()
