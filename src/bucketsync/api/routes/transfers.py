"""Transfer orchestration routes."""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path

from bucketsync.api.dependencies import get_transfer_orchestrator
from bucketsync.application.services import TransferOrchestrator
from bucketsync.domain.errors import (
    AccountNotFoundError,
    TransferNotFoundError,
    TransferValidationError,
)
from bucketsync.domain.management_models import (
    TransferJobResponse,
    TransferListResponse,
    TransferRequest,
)

router = APIRouter(prefix="/transfers", tags=["transfers"])


def _raise_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, (TransferNotFoundError, AccountNotFoundError)):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, TransferValidationError):
        raise HTTPException(status_code=400, detail=str(exc))
    raise HTTPException(status_code=500, detail="Unexpected transfer error")


def _list_response(jobs: list) -> TransferListResponse:
    return TransferListResponse(
        transfers=[TransferJobResponse.from_entity(job) for job in jobs],
    )


@router.post("", response_model=TransferListResponse, status_code=202)
async def submit_transfer(
    request: TransferRequest,
    orchestrator: TransferOrchestrator = Depends(get_transfer_orchestrator),
) -> TransferListResponse:
    """Plan and start a copy/move to one or more destinations."""

    try:
        jobs = await orchestrator.submit(request)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return _list_response(jobs)


@router.get("", response_model=TransferListResponse, status_code=200)
async def list_transfers(
    orchestrator: TransferOrchestrator = Depends(get_transfer_orchestrator),
) -> TransferListResponse:
    """List known transfers with their progress."""

    return _list_response(orchestrator.list_transfers())


@router.delete("", response_model=TransferListResponse, status_code=200)
async def clear_finished_transfers(
    orchestrator: TransferOrchestrator = Depends(get_transfer_orchestrator),
) -> TransferListResponse:
    """Drop finished transfers and return the remaining ones."""

    orchestrator.clear_finished()
    return _list_response(orchestrator.list_transfers())


@router.get("/{id}", response_model=TransferJobResponse, status_code=200)
async def get_transfer(
    id: str = Path(...),
    orchestrator: TransferOrchestrator = Depends(get_transfer_orchestrator),
) -> TransferJobResponse:
    """Get one transfer."""

    try:
        job = orchestrator.get_transfer(id)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return TransferJobResponse.from_entity(job)


@router.post("/{id}/retry", response_model=TransferJobResponse, status_code=202)
async def retry_transfer(
    id: str = Path(...),
    orchestrator: TransferOrchestrator = Depends(get_transfer_orchestrator),
) -> TransferJobResponse:
    """Start a new attempt of a failed transfer."""

    try:
        job = await orchestrator.retry(id)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return TransferJobResponse.from_entity(job)


__all__ = ["router"]
