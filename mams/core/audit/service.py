import logging
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.audit.models import ActivityLog

if TYPE_CHECKING:
    from mams.core.access.policy import Principal

logger = logging.getLogger(__name__)


class ActivityAction(StrEnum):
    """Recorded actions."""

    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    LOGIN = "Login"
    FAILED_LOGIN = "Failed Login"

    # Movement transitions
    DELIVER = "Deliver"
    APPROVE = "Approve"
    CANCEL = "Cancel"
    RETURN = "Return"
    STATUS_CHANGE = "Status Change"
    RECOVER = "Recover"


class ResourceType(StrEnum):
    """Kind of record an activity refers to."""

    ASSET = "Asset"
    USER = "User"
    PURCHASE = "Purchase"
    TRANSFER = "Transfer"
    ASSIGNMENT = "Assignment"
    EXPENDITURE = "Expenditure"


class ActivityLogService:
    """Best-effort activity recorder.

    Call record() only after the movement itself has been committed: a failing
    write here is logged and dropped, never raised to the caller.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        action: str | ActivityAction,
        resource_type: str | ResourceType,
        resource_id: int | None,
        details: dict[str, Any] | None = None,
        *,
        principal: "Principal | None" = None,
        user_id: int | None = None,
        username: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> ActivityLog | None:
        if principal is not None:
            user_id = principal.user_id
            username = principal.username

        entry = ActivityLog(
            user_id=user_id,
            username=username,
            action=str(action),
            resource_type=str(resource_type),
            resource_id=resource_id,
            details=jsonable_encoder(details) if details else None,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        try:
            # A failing insert only rolls back the savepoint, keeping loaded
            # movement objects usable for the response
            async with self.db.begin_nested():
                self.db.add(entry)
        except SQLAlchemyError:
            logger.warning(
                "Failed to record activity %s on %s id=%s",
                action,
                resource_type,
                resource_id,
                exc_info=True,
            )
            return None

        try:
            await self.db.commit()
        except SQLAlchemyError:
            logger.warning(
                "Failed to commit activity %s on %s id=%s",
                action,
                resource_type,
                resource_id,
                exc_info=True,
            )
            await self.db.rollback()
            return None

        return entry


async def list_activity_logs(
    session: AsyncSession,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    user_id: int | None = None,
    resource_type: str | None = None,
    action: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[ActivityLog], int]:
    """
    List activity entries with optional filters, newest first.
    Returns (entries, total_count).
    """
    q = select(ActivityLog).order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
    count_q = select(func.count()).select_from(ActivityLog)
    if date_from is not None:
        q = q.where(ActivityLog.created_at >= date_from)
        count_q = count_q.where(ActivityLog.created_at >= date_from)
    if date_to is not None:
        q = q.where(ActivityLog.created_at <= date_to)
        count_q = count_q.where(ActivityLog.created_at <= date_to)
    if user_id is not None:
        q = q.where(ActivityLog.user_id == user_id)
        count_q = count_q.where(ActivityLog.user_id == user_id)
    if resource_type is not None:
        q = q.where(ActivityLog.resource_type == resource_type)
        count_q = count_q.where(ActivityLog.resource_type == resource_type)
    if action is not None:
        q = q.where(ActivityLog.action == action)
        count_q = count_q.where(ActivityLog.action == action)

    total_result = await session.execute(count_q)
    total = total_result.scalar_one()

    q = q.offset((page - 1) * limit).limit(limit)
    result = await session.execute(q)
    return list(result.scalars().all()), total
