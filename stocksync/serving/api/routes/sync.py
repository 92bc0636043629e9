"""
Sync API Endpoints

Triggers for the inventory sync: the scheduled FTP check and manual CSV
uploads. Failures are logged in full and answered with a generic error
payload.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stocksync.config import get_settings
from stocksync.database.connection import get_document_store
from stocksync.database.store import DocumentStore
from stocksync.exceptions import SyncError
from stocksync.ingestion.ftp_client import FTPSource
from stocksync.serving.cache import invalidate_inventory_caches
from stocksync.sync.job import InventorySyncJob, SyncStatus

router = APIRouter()
logger = structlog.get_logger(__name__)

CHECK_FAILED = "File check failed."
UPLOAD_FAILED = "Upload failed."


class SyncResponse(BaseModel):
    """Sync outcome"""
    message: str


class SyncErrorResponse(BaseModel):
    error: str


async def get_sync_job(store: DocumentStore = Depends(get_document_store)) -> InventorySyncJob:
    """
    Sync job for the request.

    The FTP source is left unset when its settings are incomplete; the job
    then fails at run time and the endpoint answers 500.
    """
    settings = get_settings()
    source: Optional[FTPSource] = None
    if not settings.ftp.missing():
        source = FTPSource.from_settings(settings.ftp)
    return InventorySyncJob(
        store,
        source=source,
        sync_settings=settings.sync,
        remote_path=settings.ftp.remote_path,
    )


def _failure(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": message})


@router.api_route(
    "/check-file-changes",
    methods=["GET", "POST"],
    response_model=SyncResponse,
    responses={500: {"model": SyncErrorResponse}},
)
async def check_file_changes(job: InventorySyncJob = Depends(get_sync_job)):
    """
    Sync the FTP feed if it changed since the last successful sync.
    """
    try:
        result = await job.run()
    except SyncError as e:
        logger.error("Sync failed", error=str(e), error_type=type(e).__name__)
        return _failure(CHECK_FAILED)
    except Exception:
        logger.exception("Sync failed unexpectedly")
        return _failure(CHECK_FAILED)

    if result.status == SyncStatus.COMPLETED:
        await invalidate_inventory_caches()
    return SyncResponse(message=result.message)


@router.post(
    "/upload",
    response_model=SyncResponse,
    responses={500: {"model": SyncErrorResponse}},
)
async def upload_inventory(
    file: UploadFile = File(...),
    delimiter: str = Form(";"),
    job: InventorySyncJob = Depends(get_sync_job),
):
    """
    Sync a manually uploaded inventory CSV. No watermark check.
    """
    content = await file.read()
    logger.info("Inventory upload received", filename=file.filename, bytes=len(content), delimiter=delimiter)

    try:
        result = await job.run_upload(content, delimiter=delimiter, filename=file.filename or "upload.csv")
    except SyncError as e:
        logger.error("Upload sync failed", error=str(e), error_type=type(e).__name__)
        return _failure(UPLOAD_FAILED)
    except Exception:
        logger.exception("Upload sync failed unexpectedly")
        return _failure(UPLOAD_FAILED)

    await invalidate_inventory_caches()
    return SyncResponse(message=result.message)
