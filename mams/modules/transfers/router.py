"""API endpoints for Transfers module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.auth.dependencies import CommandUser, CurrentUser, LogisticsUser
from mams.core.database import get_db
from mams.modules.assets.models import AssetRecord
from mams.modules.assets.schemas import AssetResponse
from mams.modules.transfers.models import Transfer, TransferStatus
from mams.modules.transfers.schemas import (
    TransferAction,
    TransferCreate,
    TransferFilters,
    TransferResponse,
    TransferResult,
)
from mams.modules.transfers.service import TransferService
from mams.shared.schemas import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/transfers", tags=["Transfers"])


def _result(
    transfer: Transfer, source: AssetRecord | None, destination: AssetRecord | None
) -> TransferResult:
    return TransferResult(
        transfer=TransferResponse.model_validate(transfer),
        source_asset=AssetResponse.model_validate(source) if source else None,
        destination_asset=AssetResponse.model_validate(destination) if destination else None,
    )


@router.post(
    "",
    response_model=ApiResponse[TransferResult],
    status_code=status.HTTP_201_CREATED,
)
async def create_transfer(
    data: TransferCreate,
    current_user: LogisticsUser,
    db: AsyncSession = Depends(get_db),
):
    """Create a transfer; both bases are updated immediately."""
    service = TransferService(db)
    result = await service.create_transfer(data, current_user.principal)
    return ApiResponse(data=_result(*result), message="Transfer created successfully")


@router.get("", response_model=ApiResponse[PaginatedResponse[TransferResponse]])
async def list_transfers(
    current_user: CurrentUser,
    from_base: str | None = Query(None),
    to_base: str | None = Query(None),
    transfer_status: TransferStatus | None = Query(None, alias="status"),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    filters = TransferFilters(
        from_base=from_base,
        to_base=to_base,
        status=transfer_status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    service = TransferService(db)
    transfers, total = await service.list_transfers(filters, current_user.principal)
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[TransferResponse.model_validate(t) for t in transfers],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get("/{transfer_id}", response_model=ApiResponse[TransferResponse])
async def get_transfer(
    transfer_id: int,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    service = TransferService(db)
    transfer = await service.get_transfer(transfer_id, current_user.principal)
    return ApiResponse(data=TransferResponse.model_validate(transfer))


@router.post("/{transfer_id}/approve", response_model=ApiResponse[TransferResult])
async def approve_transfer(
    transfer_id: int,
    current_user: CommandUser,
    data: TransferAction | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending transfer (destination base command)."""
    service = TransferService(db)
    result = await service.approve_transfer(
        transfer_id, current_user.principal, notes=data.notes if data else None
    )
    return ApiResponse(data=_result(*result), message="Transfer approved")


@router.post("/{transfer_id}/cancel", response_model=ApiResponse[TransferResult])
async def cancel_transfer(
    transfer_id: int,
    current_user: LogisticsUser,
    data: TransferAction | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Cancel a pending transfer and reverse its balance changes."""
    service = TransferService(db)
    result = await service.cancel_transfer(
        transfer_id, current_user.principal, notes=data.notes if data else None
    )
    return ApiResponse(data=_result(*result), message="Transfer cancelled")
