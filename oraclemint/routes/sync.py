"""Admin routes for triggering and inspecting bulk syncs."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from oraclemint.models import (
    InvalidResumeState,
    SyncFailed,
    SyncProgress,
    SyncRequest,
    SyncResponse,
    SyncRunNotFound,
    SyncStatus,
    SyncType,
)
from oraclemint.services.bulk_sync import BulkSyncService, get_bulk_sync_service

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])
logger = logging.getLogger(__name__)


def _sync_message(progress: SyncProgress, run_started: bool) -> str:
    if progress.status is SyncStatus.PAUSED:
        return "Sync paused, can be resumed"
    if not run_started:
        return "Sync already up to date"
    return "Sync completed"


@router.post("/sync", response_model=SyncResponse)
async def start_sync(
    request: SyncRequest,
    service: BulkSyncService = Depends(get_bulk_sync_service),
) -> SyncResponse:
    """Start a bulk sync, or resume a paused one with ``resume_id``."""
    last_completed = None
    if not request.resume_id:
        last_completed = await service.get_latest_sync_run(request.type, SyncStatus.COMPLETED)

    try:
        progress = await service.start_sync(request.type, force=request.force, resume_id=request.resume_id)
    except SyncRunNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except InvalidResumeState as exc:
        raise HTTPException(status_code=409, detail=exc.message)
    except SyncFailed as exc:
        logger.error(f"Sync run {exc.sync_run_id} failed: {exc.message}")
        raise HTTPException(
            status_code=500,
            detail=f"Sync failed: {exc.message} (run {exc.sync_run_id}, "
            f"{exc.processed} processed, checkpoint {exc.last_oracle_id})",
        )

    # The up-to-date short-circuit hands back the previous completed run unchanged
    run_started = last_completed is None or last_completed.sync_run_id != progress.sync_run_id

    return SyncResponse(
        **progress.model_dump(),
        message=_sync_message(progress, run_started),
    )


@router.get("/sync", response_model=SyncProgress)
async def get_sync_status(
    id: Optional[str] = Query(None, description="Sync run id"),
    type: SyncType = Query(SyncType.ORACLE_CARDS, description="Sync type, used when no id is given"),
    service: BulkSyncService = Depends(get_bulk_sync_service),
) -> SyncProgress:
    """Get a sync run by id, or the latest run of a type."""
    if id:
        progress = await service.get_sync_status(id)
        if progress is None:
            raise HTTPException(status_code=404, detail=f"Sync run {id} not found")
        return progress

    progress = await service.get_latest_sync_run(type)
    if progress is None:
        raise HTTPException(status_code=404, detail=f"No {type.value} sync runs found")
    return progress
