"""API endpoints for Assignments module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.auth.dependencies import CommandUser, CurrentUser
from mams.core.database import get_db
from mams.modules.assets.models import AssetRecord, AssetType
from mams.modules.assets.schemas import AssetResponse
from mams.modules.assignments.models import Assignment, AssignmentStatus
from mams.modules.assignments.schemas import (
    AssignedPerson,
    AssignmentCreate,
    AssignmentFilters,
    AssignmentResponse,
    AssignmentResult,
    AssignmentReturn,
    AssignmentStatusUpdate,
)
from mams.modules.assignments.service import AssignmentService
from mams.shared.schemas import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/assignments", tags=["Assignments"])


def _assignment_to_response(assignment: Assignment) -> AssignmentResponse:
    return AssignmentResponse(
        id=assignment.id,
        asset_id=assignment.asset_id,
        asset_name=assignment.asset_name,
        asset_type=assignment.asset_type,
        base=assignment.base,
        quantity=assignment.quantity,
        returned_quantity=assignment.returned_quantity,
        outstanding_quantity=assignment.outstanding_quantity,
        assigned_to=AssignedPerson(
            name=assignment.assigned_to_name,
            rank=assignment.assigned_to_rank,
            service_id=assignment.assigned_to_service_id,
        ),
        purpose=assignment.purpose,
        status=assignment.status,
        start_date=assignment.start_date,
        end_date=assignment.end_date,
        notes=assignment.notes,
        assigned_by_id=assignment.assigned_by_id,
        created_at=assignment.created_at,
        updated_at=assignment.updated_at,
    )


def _result(assignment: Assignment, asset: AssetRecord | None) -> AssignmentResult:
    return AssignmentResult(
        assignment=_assignment_to_response(assignment),
        asset=AssetResponse.model_validate(asset) if asset else None,
    )


@router.post(
    "",
    response_model=ApiResponse[AssignmentResult],
    status_code=status.HTTP_201_CREATED,
)
async def create_assignment(
    data: AssignmentCreate,
    current_user: CommandUser,
    db: AsyncSession = Depends(get_db),
):
    """Assign asset units to a person."""
    service = AssignmentService(db)
    assignment, asset = await service.create_assignment(data, current_user.principal)
    return ApiResponse(
        data=_result(assignment, asset), message="Assignment created successfully"
    )


@router.get("", response_model=ApiResponse[PaginatedResponse[AssignmentResponse]])
async def list_assignments(
    current_user: CurrentUser,
    base: str | None = Query(None),
    asset_type: AssetType | None = Query(None),
    assignment_status: AssignmentStatus | None = Query(None, alias="status"),
    assigned_to: str | None = Query(None, description="Name substring"),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    filters = AssignmentFilters(
        base=base,
        asset_type=asset_type,
        status=assignment_status,
        assigned_to=assigned_to,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    service = AssignmentService(db)
    assignments, total = await service.list_assignments(filters, current_user.principal)
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[_assignment_to_response(a) for a in assignments],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get("/{assignment_id}", response_model=ApiResponse[AssignmentResponse])
async def get_assignment(
    assignment_id: int,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    service = AssignmentService(db)
    assignment = await service.get_assignment(assignment_id, current_user.principal)
    return ApiResponse(data=_assignment_to_response(assignment))


@router.post("/{assignment_id}/return", response_model=ApiResponse[AssignmentResult])
async def return_assignment(
    assignment_id: int,
    data: AssignmentReturn,
    current_user: CommandUser,
    db: AsyncSession = Depends(get_db),
):
    """Return some or all of the assigned units."""
    service = AssignmentService(db)
    assignment, asset = await service.return_assignment(
        assignment_id, data.returned_quantity, current_user.principal, notes=data.notes
    )
    return ApiResponse(data=_result(assignment, asset), message="Return recorded")


@router.post("/{assignment_id}/status", response_model=ApiResponse[AssignmentResult])
async def set_assignment_status(
    assignment_id: int,
    data: AssignmentStatusUpdate,
    current_user: CommandUser,
    db: AsyncSession = Depends(get_db),
):
    """Mark outstanding units as Lost or Damaged."""
    service = AssignmentService(db)
    assignment, asset = await service.set_status(
        assignment_id, data.status, current_user.principal, notes=data.notes
    )
    return ApiResponse(
        data=_result(assignment, asset), message=f"Assignment marked {assignment.status}"
    )
