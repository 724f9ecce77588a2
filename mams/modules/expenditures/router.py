"""API endpoints for Expenditures module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.auth.dependencies import AdminUser, CommandUser, CurrentUser
from mams.core.database import get_db
from mams.modules.assets.models import AssetRecord, AssetType
from mams.modules.assets.schemas import AssetResponse
from mams.modules.assignments.schemas import AssignedPerson
from mams.modules.expenditures.models import Expenditure, ExpenditureReason
from mams.modules.expenditures.schemas import (
    ExpenditureCreate,
    ExpenditureFilters,
    ExpenditureResponse,
    ExpenditureResult,
    ExpenditureUpdate,
)
from mams.modules.expenditures.service import ExpenditureService
from mams.shared.schemas import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/expenditures", tags=["Expenditures"])


def _expenditure_to_response(expenditure: Expenditure) -> ExpenditureResponse:
    return ExpenditureResponse(
        id=expenditure.id,
        asset_id=expenditure.asset_id,
        asset_name=expenditure.asset_name,
        asset_type=expenditure.asset_type,
        base=expenditure.base,
        quantity=expenditure.quantity,
        reason=expenditure.reason,
        expended_by=AssignedPerson(
            name=expenditure.expended_by_name,
            rank=expenditure.expended_by_rank,
            service_id=expenditure.expended_by_service_id,
        ),
        operation_name=expenditure.operation_name,
        location=expenditure.location,
        expenditure_date=expenditure.expenditure_date,
        notes=expenditure.notes,
        authorized_by_id=expenditure.authorized_by_id,
        created_at=expenditure.created_at,
        updated_at=expenditure.updated_at,
    )


def _result(expenditure: Expenditure, asset: AssetRecord | None) -> ExpenditureResult:
    return ExpenditureResult(
        expenditure=_expenditure_to_response(expenditure),
        asset=AssetResponse.model_validate(asset) if asset else None,
    )


@router.post(
    "",
    response_model=ApiResponse[ExpenditureResult],
    status_code=status.HTTP_201_CREATED,
)
async def create_expenditure(
    data: ExpenditureCreate,
    current_user: CommandUser,
    db: AsyncSession = Depends(get_db),
):
    service = ExpenditureService(db)
    expenditure, asset = await service.create_expenditure(data, current_user.principal)
    return ApiResponse(
        data=_result(expenditure, asset), message="Expenditure recorded successfully"
    )


@router.get("", response_model=ApiResponse[PaginatedResponse[ExpenditureResponse]])
async def list_expenditures(
    current_user: CurrentUser,
    base: str | None = Query(None),
    asset_type: AssetType | None = Query(None),
    reason: ExpenditureReason | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    filters = ExpenditureFilters(
        base=base,
        asset_type=asset_type,
        reason=reason,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    service = ExpenditureService(db)
    expenditures, total = await service.list_expenditures(filters, current_user.principal)
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[_expenditure_to_response(e) for e in expenditures],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get("/{expenditure_id}", response_model=ApiResponse[ExpenditureResponse])
async def get_expenditure(
    expenditure_id: int,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    service = ExpenditureService(db)
    expenditure = await service.get_expenditure(expenditure_id, current_user.principal)
    return ApiResponse(data=_expenditure_to_response(expenditure))


@router.put("/{expenditure_id}", response_model=ApiResponse[ExpenditureResponse])
async def update_expenditure(
    expenditure_id: int,
    data: ExpenditureUpdate,
    current_user: CommandUser,
    db: AsyncSession = Depends(get_db),
):
    """Append to the expenditure notes."""
    service = ExpenditureService(db)
    expenditure = await service.update_notes(expenditure_id, data.notes, current_user.principal)
    return ApiResponse(
        data=_expenditure_to_response(expenditure),
        message="Expenditure updated successfully",
    )


@router.delete("/{expenditure_id}", response_model=ApiResponse[AssetResponse | None])
async def delete_expenditure(
    expenditure_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Delete an expenditure, returning the restored asset record."""
    service = ExpenditureService(db)
    asset = await service.delete_expenditure(expenditure_id, current_user.principal)
    return ApiResponse(
        data=AssetResponse.model_validate(asset) if asset else None,
        message="Expenditure deleted successfully",
    )
