"""FastAPI main application for the QueueTicket document server"""

import mimetypes
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse

from qticket.utils.config import Settings, config_manager
from qticket.utils.exceptions import (
    AuthenticationError,
    DocumentNotFoundError,
    DocumentSchemaError,
    ValidationError,
)
from qticket.utils.logger import get_logger

from . import cleanup_scheduler
from .context import ServerContext
from .documents_api import router as documents_router
from .queue_routes import router as queue_router

logger = get_logger(__name__)

NOT_FOUND_PAGE = "<h1>404 Not Found</h1>"


def _resolve_static(ctx: ServerContext, path: str) -> Optional[Path]:
    """Map a request path to a file inside the static directory"""
    root = ctx.static_dir.resolve()
    relative = path.strip("/") or ctx.default_document
    candidate = (root / relative).resolve()
    if root != candidate and root not in candidate.parents:
        return None
    return candidate if candidate.is_file() else None


def create_app(context: Optional[ServerContext] = None, start_scheduler: bool = True) -> FastAPI:
    """Build the app around a server context (settings from config/settings.yaml by default)"""
    if context is None:
        context = ServerContext(config_manager.settings)
    settings: Settings = context.settings

    app = FastAPI(
        title="QueueTicket Server",
        description="Queue number distribution, display and document storage",
        version=settings.app.version,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(request: Request, exc: AuthenticationError):
        return JSONResponse(status_code=401, content={"detail": exc.reason, "redirect": "/login"})

    @app.exception_handler(DocumentNotFoundError)
    async def not_found_handler(request: Request, exc: DocumentNotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(DocumentSchemaError)
    async def schema_error_handler(request: Request, exc: DocumentSchemaError):
        logger.error("Stored document rejected", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"error": f"Internal server error: {exc}"})

    app.include_router(documents_router)
    app.include_router(queue_router)

    @app.get("/{path:path}", include_in_schema=False)
    async def serve_static(path: str):
        """Static files; unknown paths fall back to the landing document"""
        target = _resolve_static(context, path) or _resolve_static(context, "")
        if target is None:
            return HTMLResponse(NOT_FOUND_PAGE, status_code=404)
        media_type = mimetypes.guess_type(str(target))[0] or "text/plain"
        return FileResponse(str(target), media_type=media_type)

    @app.on_event("startup")
    async def startup_event():
        context.storage.ensure_dirs()
        logger.info(
            "Queue server ready",
            auth_file=str(context.storage.auth_file),
            backup_dir=str(context.storage.backup_dir),
            static_dir=str(context.static_dir),
        )
        if start_scheduler and settings.cleanup.enabled:
            try:
                cleanup_scheduler.start_cleanup_scheduler(
                    context.cleanup,
                    interval_hours=settings.cleanup.interval_hours,
                    run_on_start=settings.cleanup.run_on_start,
                )
            except Exception as e:
                logger.error("Failed to start cleanup scheduler", error=str(e))

    @app.on_event("shutdown")
    async def shutdown_event():
        if start_scheduler:
            try:
                cleanup_scheduler.stop_cleanup_scheduler()
            except Exception as e:
                logger.warning("Error stopping cleanup scheduler", error=str(e))

    return app


app = create_app()
