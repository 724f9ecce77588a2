from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.audit.schemas import ActivityLogResponse
from mams.core.audit.service import ActivityAction, ResourceType, list_activity_logs
from mams.core.auth.dependencies import AdminUser
from mams.core.database import get_db
from mams.shared.schemas import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/activity-logs", tags=["Activity Logs"])


@router.get("", response_model=ApiResponse[PaginatedResponse[ActivityLogResponse]])
async def list_activity(
    current_user: AdminUser,
    user_id: int | None = Query(None),
    action: ActivityAction | None = Query(None),
    resource_type: ResourceType | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """List activity log entries. Admin only."""
    entries, total = await list_activity_logs(
        db,
        date_from=date_from,
        date_to=date_to,
        user_id=user_id,
        resource_type=resource_type.value if resource_type else None,
        action=action.value if action else None,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[ActivityLogResponse.model_validate(e) for e in entries],
            total=total,
            page=page,
            limit=limit,
        ),
    )
