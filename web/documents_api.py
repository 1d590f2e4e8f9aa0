"""
Document endpoints of the file server.

These keep the paths, verbs and messages browser clients already use.
They carry no authentication; any client that can reach the server can
read and overwrite the credential collection.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from qticket.storage.base import CREDENTIALS_KEY, queue_state_key
from qticket.storage.json_files import read_json
from qticket.utils.exceptions import DocumentNotFoundError
from qticket.utils.logger import get_logger

from . import cleanup_scheduler
from .context import ServerContext
from .models import (
    CleanupRunResponse,
    CleanupStatusResponse,
    DeleteQueueAuthRequest,
    QueueBackupRequest,
    SuccessResponse,
)

logger = get_logger(__name__)

router = APIRouter(tags=["documents"])


def get_context(request: Request) -> ServerContext:
    return request.app.state.context


@router.get("/queue-auth.json")
async def serve_auth_file(ctx: ServerContext = Depends(get_context)):
    """Whole credential collection as stored"""
    data = read_json(ctx.storage.auth_file)
    if data is None:
        raise DocumentNotFoundError("Auth file not found")
    return data


@router.post("/api/save-auth", response_model=SuccessResponse, response_model_exclude_none=True)
async def save_auth(
    payload: Dict[str, Any] = Body(...),
    ctx: ServerContext = Depends(get_context),
):
    ctx.storage.set(CREDENTIALS_KEY, payload)
    logger.info("Auth data saved", queues=list(payload.get("queues") or {}))
    return SuccessResponse()


@router.delete("/api/delete-auth", response_model=SuccessResponse)
async def delete_auth(ctx: ServerContext = Depends(get_context)):
    if not ctx.storage.delete(CREDENTIALS_KEY):
        return SuccessResponse(message="Auth file does not exist (already deleted)")
    logger.info("Auth file deleted")
    return SuccessResponse(message="Entire auth file deleted successfully")


@router.delete("/api/delete-queue-auth", response_model=SuccessResponse)
async def delete_queue_auth(
    body: DeleteQueueAuthRequest,
    ctx: ServerContext = Depends(get_context),
):
    queue_name = body.queue_name
    data = ctx.storage.get(CREDENTIALS_KEY)
    if data is None:
        raise DocumentNotFoundError("Auth file not found")

    queues = data.get("queues") or {}
    if queue_name not in queues:
        raise DocumentNotFoundError(f'Queue "{queue_name}" not found in auth file')

    del queues[queue_name]
    if not queues:
        ctx.storage.delete(CREDENTIALS_KEY)
        logger.info("Queue removed, auth file deleted", queue=queue_name)
        return SuccessResponse(message="Queue removed and auth file deleted (no queues remaining)")

    data["queues"] = queues
    data["lastUpdated"] = ctx.clock().isoformat()
    ctx.storage.set(CREDENTIALS_KEY, data)
    logger.info("Queue removed from auth file", queue=queue_name, remaining=len(queues))
    return SuccessResponse(message=f'Queue "{queue_name}" removed from auth file')


@router.post("/api/save-queue-backup", response_model=SuccessResponse, response_model_exclude_none=True)
async def save_queue_backup(
    body: QueueBackupRequest,
    ctx: ServerContext = Depends(get_context),
):
    ctx.storage.set(queue_state_key(body.queue_name), body.data)
    logger.info("Queue backup saved", queue=body.queue_name)
    return SuccessResponse()


@router.get("/api/get-queue-backup/{queue_name}")
async def get_queue_backup(queue_name: str, ctx: ServerContext = Depends(get_context)):
    """Stored backup file as written by save-queue-backup"""
    data = read_json(ctx.storage.backup_path(queue_name))
    if data is None:
        logger.info("Queue backup not found", queue=queue_name)
        raise DocumentNotFoundError("Queue backup not found")
    return data


@router.delete("/api/delete-queue-backup/{queue_name}", response_model=SuccessResponse)
async def delete_queue_backup(queue_name: str, ctx: ServerContext = Depends(get_context)):
    if not ctx.storage.delete(queue_state_key(queue_name)):
        return SuccessResponse(message=f"Backup file for {queue_name} does not exist (already deleted)")
    logger.info("Queue backup deleted", queue=queue_name)
    return SuccessResponse(message=f"Backup file for {queue_name} deleted successfully")


@router.post("/api/manual-cleanup", response_model=CleanupRunResponse)
async def manual_cleanup(ctx: ServerContext = Depends(get_context)):
    report = ctx.cleanup.run_cleanup()
    return CleanupRunResponse(
        message=f"Cleanup completed, removed {len(report.removed)} queue(s)",
        checked=report.checked,
        removed=report.removed,
        remaining=len(report.kept),
    )


@router.get("/api/cleanup-status", response_model=CleanupStatusResponse)
async def cleanup_status(ctx: ServerContext = Depends(get_context)):
    report = ctx.cleanup.last_report
    upcoming = cleanup_scheduler.next_run()
    return CleanupStatusResponse(
        enabled=ctx.settings.cleanup.enabled,
        running=cleanup_scheduler.is_running(),
        last_run=report.ran_at.isoformat() if report else None,
        next_run=upcoming.isoformat() if upcoming else None,
        queue_count=len(ctx.credentials.names()),
        last_removed=report.removed if report else [],
    )
