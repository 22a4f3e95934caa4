import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from .config import Settings, get_settings
from .db import Database
from .logging_config import build_log_config, setup_logging
from .routes import tasks
from .schemas import violations_from_errors

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    database: Database = app.state.database
    await database.open()
    logger.info("Task Manager API started")
    try:
        yield
    finally:
        await database.close()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        violations = violations_from_errors(exc.errors())
        logger.info(
            "Rejected %s %s: %s",
            request.method,
            request.url.path,
            ", ".join(v.field for v in violations),
        )
        return JSONResponse(
            status_code=400,
            content={"errors": [v.model_dump() for v in violations]},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Storage error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application around its own Database"""
    settings = settings or get_settings()

    app = FastAPI(
        title="Task Manager API",
        description="Create, filter, search and track tasks",
        version=VERSION,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.database = Database(settings.database_url, echo=settings.sql_echo)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials="*" not in settings.allowed_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    register_exception_handlers(app)
    app.include_router(tasks.router, prefix="/api")

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/api/info")
    async def api_info():
        """API information endpoint"""
        return {
            "version": VERSION,
            "endpoints": {
                "tasks": "/api/tasks",
                "stats": "/api/tasks/stats",
                "health": "/health",
            },
            "filters": ["status", "priority", "search"],
        }

    if STATIC_DIR.is_dir():
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    # Serve the browser client for every non-API GET; anything else is unknown
    @app.api_route(
        "/{full_path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    async def browser_client(request: Request, full_path: str):
        index = STATIC_DIR / "index.html"
        if request.method != "GET" or full_path.startswith("api/") or not index.is_file():
            raise HTTPException(status_code=404, detail="Not found")
        return FileResponse(index)

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    log_config = build_log_config(settings.log_level, settings.log_format)
    setup_logging(settings.log_level, settings.log_format)

    uvicorn.run(
        "task_manager.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )


if __name__ == "__main__":
    run()
