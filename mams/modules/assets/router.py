"""API endpoints for Assets module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.auth.dependencies import AdminUser, CurrentUser, LogisticsUser
from mams.core.database import get_db
from mams.modules.assets.models import AssetType
from mams.modules.assets.schemas import (
    AssetCreate,
    AssetFilters,
    AssetResponse,
    AssetSortField,
    AssetUpdate,
    SortOrder,
)
from mams.modules.assets.service import AssetService
from mams.shared.schemas import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/assets", tags=["Assets"])


@router.post(
    "",
    response_model=ApiResponse[AssetResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_asset(
    data: AssetCreate,
    current_user: LogisticsUser,
    db: AsyncSession = Depends(get_db),
):
    """Register an asset at a base."""
    service = AssetService(db)
    asset = await service.create_asset(data, current_user.principal)
    return ApiResponse(
        data=AssetResponse.model_validate(asset),
        message="Asset created successfully",
    )


@router.get("", response_model=ApiResponse[PaginatedResponse[AssetResponse]])
async def list_assets(
    current_user: CurrentUser,
    base: str | None = Query(None),
    type: AssetType | None = Query(None),
    name: str | None = Query(None, description="Substring match on name"),
    sort_by: AssetSortField = Query(AssetSortField.CREATED_AT),
    sort_order: SortOrder = Query(SortOrder.DESC),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List assets visible to the current user."""
    filters = AssetFilters(
        base=base,
        type=type,
        name=name,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    service = AssetService(db)
    assets, total = await service.list_assets(filters, current_user.principal)
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[AssetResponse.model_validate(a) for a in assets],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get("/base/{base}", response_model=ApiResponse[list[AssetResponse]])
async def list_assets_by_base(
    base: str,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    service = AssetService(db)
    assets = await service.list_by_base(base, current_user.principal)
    return ApiResponse(data=[AssetResponse.model_validate(a) for a in assets])


@router.get("/type/{asset_type}", response_model=ApiResponse[list[AssetResponse]])
async def list_assets_by_type(
    asset_type: AssetType,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    service = AssetService(db)
    assets = await service.list_by_type(asset_type, current_user.principal)
    return ApiResponse(data=[AssetResponse.model_validate(a) for a in assets])


@router.get("/{asset_id}", response_model=ApiResponse[AssetResponse])
async def get_asset(
    asset_id: int,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    service = AssetService(db)
    asset = await service.get_asset(asset_id, current_user.principal)
    return ApiResponse(data=AssetResponse.model_validate(asset))


@router.patch("/{asset_id}", response_model=ApiResponse[AssetResponse])
async def update_asset(
    asset_id: int,
    data: AssetUpdate,
    current_user: LogisticsUser,
    db: AsyncSession = Depends(get_db),
):
    """Edit name, type, base or opening balance."""
    service = AssetService(db)
    asset = await service.update_asset(asset_id, data, current_user.principal)
    return ApiResponse(
        data=AssetResponse.model_validate(asset),
        message="Asset updated successfully",
    )


@router.delete("/{asset_id}", response_model=ApiResponse[None])
async def delete_asset(
    asset_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    service = AssetService(db)
    await service.delete_asset(asset_id, current_user.principal)
    return ApiResponse(data=None, message="Asset deleted successfully")
