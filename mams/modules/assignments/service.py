"""Service for Assignments module."""

from datetime import date

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.access import Action, Principal, ensure_access, scope_base
from mams.core.audit import ActivityAction, ActivityLogService
from mams.core.exceptions import (
    BaseMismatchError,
    InsufficientQuantityError,
    InvalidQuantityError,
    InvalidStatusError,
    NotActiveError,
    NotFoundError,
)
from mams.modules.assets import ledger
from mams.modules.assets.ledger import AssetDelta
from mams.modules.assets.models import AssetRecord
from mams.modules.assignments.models import (
    WRITE_OFF_STATUSES,
    Assignment,
    AssignmentStatus,
)
from mams.modules.assignments.schemas import AssignmentCreate, AssignmentFilters
from mams.shared.utils.notes import append_note
from mams.shared.utils.transitions import claim_status


class AssignmentService:
    """Assignment state machine: Active -> Returned | Lost | Damaged.

    Partial returns keep the assignment Active until every unit is back.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityLogService(db)

    async def _get(self, assignment_id: int) -> Assignment:
        result = await self.db.execute(
            select(Assignment)
            .where(Assignment.id == assignment_id)
            .execution_options(populate_existing=True)
        )
        assignment = result.scalar_one_or_none()
        if not assignment:
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    async def get_assignment(self, assignment_id: int, principal: Principal) -> Assignment:
        assignment = await self._get(assignment_id)
        ensure_access(principal, Action.ASSIGNMENT_READ, assignment.base)
        return assignment

    async def list_assignments(
        self, filters: AssignmentFilters, principal: Principal
    ) -> tuple[list[Assignment], int]:
        query = select(Assignment)

        base = scope_base(principal, Action.ASSIGNMENT_READ, filters.base)
        if base:
            query = query.where(Assignment.base == base)
        if filters.asset_type:
            query = query.where(Assignment.asset_type == filters.asset_type.value)
        if filters.status:
            query = query.where(Assignment.status == filters.status.value)
        if filters.assigned_to:
            query = query.where(
                Assignment.assigned_to_name.ilike(f"%{filters.assigned_to.strip()}%")
            )
        if filters.date_from:
            query = query.where(Assignment.start_date >= filters.date_from)
        if filters.date_to:
            query = query.where(Assignment.start_date <= filters.date_to)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(Assignment.start_date.desc(), Assignment.id.desc())
        query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def create_assignment(
        self, data: AssignmentCreate, principal: Principal
    ) -> tuple[Assignment, AssetRecord]:
        """Check out units of an asset at the requested base."""
        if data.quantity <= 0:
            raise InvalidQuantityError("Quantity must be positive", requested=data.quantity)
        ensure_access(principal, Action.ASSIGNMENT_CREATE, data.base)

        asset = await ledger.get_asset(self.db, data.asset_id)
        if not asset:
            raise NotFoundError("Asset", data.asset_id)
        if asset.base != data.base:
            raise BaseMismatchError(asset.id, asset.base, data.base)
        if asset.available < data.quantity:
            raise InsufficientQuantityError(asset.id, data.quantity, asset.available)

        asset = await ledger.apply_delta(
            self.db,
            asset.id,
            AssetDelta(assigned=data.quantity),
            require_available=data.quantity,
        )

        assignment = Assignment(
            asset_id=asset.id,
            asset_name=asset.name,
            asset_type=asset.type,
            base=asset.base,
            quantity=data.quantity,
            returned_quantity=0,
            assigned_to_name=data.assigned_to.name,
            assigned_to_rank=data.assigned_to.rank,
            assigned_to_service_id=data.assigned_to.service_id,
            purpose=data.purpose,
            status=AssignmentStatus.ACTIVE.value,
            start_date=data.start_date or date.today(),
            notes=append_note(None, data.notes, principal.username),
            assigned_by_id=principal.user_id,
        )
        self.db.add(assignment)
        await self.db.commit()

        await self.activity.record(
            ActivityAction.CREATE,
            Assignment.resource_type,
            assignment.id,
            details={
                "asset_id": asset.id,
                "base": asset.base,
                "quantity": assignment.quantity,
                "assigned_to": assignment.assigned_to_name,
            },
            principal=principal,
        )
        return assignment, asset

    async def return_assignment(
        self,
        assignment_id: int,
        returned_quantity: int,
        principal: Principal,
        notes: str | None = None,
    ) -> tuple[Assignment, AssetRecord | None]:
        """Return some or all outstanding units.

        Reaching the full quantity closes the assignment as Returned.
        """
        if returned_quantity <= 0:
            raise InvalidQuantityError(
                "Returned quantity must be positive", requested=returned_quantity
            )
        assignment = await self._get(assignment_id)
        ensure_access(principal, Action.ASSIGNMENT_RETURN, assignment.base)
        if assignment.status != AssignmentStatus.ACTIVE.value:
            raise NotActiveError("Assignment", assignment.status)
        remaining = assignment.outstanding_quantity
        if returned_quantity > remaining:
            raise InvalidQuantityError(
                f"Cannot return {returned_quantity}, only {remaining} outstanding",
                requested=returned_quantity,
                remaining=remaining,
            )

        new_returned = Assignment.returned_quantity + returned_quantity
        fully_returned = new_returned >= Assignment.quantity
        claimed = await claim_status(
            self.db,
            Assignment,
            assignment.id,
            [AssignmentStatus.ACTIVE.value],
            {
                "returned_quantity": new_returned,
                "status": case(
                    (fully_returned, AssignmentStatus.RETURNED.value),
                    else_=AssignmentStatus.ACTIVE.value,
                ),
                "end_date": case((fully_returned, date.today()), else_=Assignment.end_date),
            },
            new_returned <= Assignment.quantity,
        )
        if not claimed:
            # Raced with another return or a status change
            current = await self._get(assignment.id)
            if current.status != AssignmentStatus.ACTIVE.value:
                raise NotActiveError("Assignment", current.status)
            raise InvalidQuantityError(
                f"Cannot return {returned_quantity}, only "
                f"{current.outstanding_quantity} outstanding",
                requested=returned_quantity,
                remaining=current.outstanding_quantity,
            )

        asset = await ledger.compensate(
            self.db, assignment.asset_id, AssetDelta(assigned=-returned_quantity)
        )

        assignment = await self._get(assignment.id)
        assignment.notes = append_note(
            assignment.notes,
            f"Returned {returned_quantity}" + (f": {notes}" if notes else ""),
            principal.username,
        )
        await self.db.commit()

        await self.activity.record(
            ActivityAction.RETURN,
            Assignment.resource_type,
            assignment.id,
            details={
                "returned_quantity": returned_quantity,
                "total_returned": assignment.returned_quantity,
                "status": assignment.status,
            },
            principal=principal,
        )
        return assignment, asset

    async def set_status(
        self,
        assignment_id: int,
        status: str,
        principal: Principal,
        notes: str | None = None,
    ) -> tuple[Assignment, AssetRecord | None]:
        """Active -> Lost | Damaged: unreturned units are written off as expended."""
        allowed = [s.value for s in WRITE_OFF_STATUSES]
        if status not in allowed:
            raise InvalidStatusError(str(status), allowed)
        assignment = await self._get(assignment_id)
        ensure_access(principal, Action.ASSIGNMENT_STATUS, assignment.base)
        if assignment.status != AssignmentStatus.ACTIVE.value:
            raise NotActiveError("Assignment", assignment.status)

        remaining = assignment.outstanding_quantity
        claimed = await claim_status(
            self.db,
            Assignment,
            assignment.id,
            [AssignmentStatus.ACTIVE.value],
            {"status": str(status), "end_date": date.today()},
            Assignment.returned_quantity == assignment.returned_quantity,
        )
        if not claimed:
            current = await self._get(assignment.id)
            if current.status != AssignmentStatus.ACTIVE.value:
                raise NotActiveError("Assignment", current.status)
            # A concurrent partial return moved returned_quantity; retry with fresh numbers
            return await self.set_status(assignment_id, status, principal, notes)

        asset = await ledger.compensate(
            self.db,
            assignment.asset_id,
            AssetDelta(assigned=-remaining, expended=remaining),
        )

        assignment = await self._get(assignment.id)
        assignment.notes = append_note(
            assignment.notes,
            f"Marked {status}" + (f": {notes}" if notes else ""),
            principal.username,
        )
        await self.db.commit()

        await self.activity.record(
            ActivityAction.STATUS_CHANGE,
            Assignment.resource_type,
            assignment.id,
            details={"status": assignment.status, "written_off": remaining},
            principal=principal,
        )
        return assignment, asset
