"""Sync job management routes."""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path, Response

from bucketsync.api.dependencies import get_sync_job_service, get_sync_scheduler
from bucketsync.application.services import SyncJobService, SyncScheduler
from bucketsync.domain.errors import (
    AccountNotFoundError,
    SyncJobConflictError,
    SyncJobNotFoundError,
    SyncJobValidationError,
)
from bucketsync.domain.management_models import (
    SyncJobCreateRequest,
    SyncJobListResponse,
    SyncJobResponse,
    SyncJobUpdateRequest,
)

router = APIRouter(prefix="/sync-jobs", tags=["sync jobs"])


def _raise_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, (SyncJobNotFoundError, AccountNotFoundError)):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, SyncJobConflictError):
        raise HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, SyncJobValidationError):
        raise HTTPException(status_code=400, detail=str(exc))
    raise HTTPException(status_code=500, detail="Unexpected sync job error")


@router.get("", response_model=SyncJobListResponse, status_code=200)
async def list_sync_jobs(
    service: SyncJobService = Depends(get_sync_job_service),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
) -> SyncJobListResponse:
    """List sync jobs and the id of the one currently running."""

    try:
        jobs = await service.list_jobs()
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return SyncJobListResponse(
        running_job_id=scheduler.running_job_id,
        sync_jobs=[SyncJobResponse.from_entity(job) for job in jobs],
    )


@router.post("", response_model=SyncJobResponse, status_code=201)
async def create_sync_job(
    request: SyncJobCreateRequest,
    service: SyncJobService = Depends(get_sync_job_service),
) -> SyncJobResponse:
    """Create a sync job."""

    try:
        job = await service.create_job(request)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return SyncJobResponse.from_entity(job)


@router.get("/{id}", response_model=SyncJobResponse, status_code=200)
async def get_sync_job(
    id: str = Path(...),
    service: SyncJobService = Depends(get_sync_job_service),
) -> SyncJobResponse:
    """Get one sync job."""

    try:
        job = await service.get_job(id)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return SyncJobResponse.from_entity(job)


@router.patch("/{id}", response_model=SyncJobResponse, status_code=200)
async def update_sync_job(
    request: SyncJobUpdateRequest,
    id: str = Path(...),
    service: SyncJobService = Depends(get_sync_job_service),
) -> SyncJobResponse:
    """Edit name, interval or mirror mode of a sync job."""

    try:
        job = await service.update_job(id, request)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return SyncJobResponse.from_entity(job)


@router.delete("/{id}", status_code=204)
async def delete_sync_job(
    id: str = Path(...),
    service: SyncJobService = Depends(get_sync_job_service),
) -> Response:
    """Delete a sync job."""

    try:
        await service.delete_job(id)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return Response(status_code=204)


@router.post("/{id}/run", response_model=SyncJobResponse, status_code=202)
async def run_sync_job(
    id: str = Path(...),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
) -> SyncJobResponse:
    """Start a sync job now; the run continues in the background."""

    try:
        job = await scheduler.run_job_now(id)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return SyncJobResponse.from_entity(job)


__all__ = ["router"]
