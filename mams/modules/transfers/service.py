"""Service for Transfers module.

A transfer touches two asset records. Each side is applied in its own
commit together with the TransferIntent step that records it, so a crash
between the two leaves an intent that recover_incomplete() can finish.
"""

import logging
from datetime import date

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.access import Action, Principal, ensure_access, scope_base
from mams.core.audit import ActivityAction, ActivityLogService
from mams.core.exceptions import (
    AlreadyTerminalError,
    AppException,
    BaseMismatchError,
    InsufficientQuantityError,
    InvalidQuantityError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from mams.modules.assets import ledger
from mams.modules.assets.ledger import AssetDelta
from mams.modules.assets.models import AssetRecord
from mams.modules.transfers.models import (
    IntentOperation,
    IntentStep,
    Transfer,
    TransferIntent,
    TransferStatus,
)
from mams.modules.transfers.schemas import TransferCreate, TransferFilters
from mams.shared.utils.notes import append_note
from mams.shared.utils.transitions import claim_status

logger = logging.getLogger(__name__)

TransferResult = tuple[Transfer, AssetRecord | None, AssetRecord | None]


def _deltas(transfer: Transfer, operation: str) -> tuple[AssetDelta, AssetDelta]:
    source = AssetDelta(transfer_out=transfer.quantity)
    destination = AssetDelta(transfer_in=transfer.quantity)
    if operation == IntentOperation.REVERT.value:
        return source.inverse(), destination.inverse()
    return source, destination


class TransferService:
    """Transfer state machine: Pending -> Completed | Cancelled."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityLogService(db)

    async def _get(self, transfer_id: int) -> Transfer:
        result = await self.db.execute(
            select(Transfer)
            .where(Transfer.id == transfer_id)
            .execution_options(populate_existing=True)
        )
        transfer = result.scalar_one_or_none()
        if not transfer:
            raise NotFoundError("Transfer", transfer_id)
        return transfer

    async def _assets(self, transfer: Transfer) -> tuple[AssetRecord | None, AssetRecord | None]:
        source = await ledger.get_asset(self.db, transfer.asset_id)
        destination = await ledger.get_asset(self.db, transfer.destination_asset_id)
        return source, destination

    # --- Intent log ---

    async def _advance_step(self, intent_id: int, current: str, target: str) -> bool:
        """Move an intent from current to target; False if another session already did."""
        result = await self.db.execute(
            update(TransferIntent)
            .where(TransferIntent.id == intent_id, TransferIntent.step == current)
            .values(step=target)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _run_intent(self, transfer: Transfer, intent: TransferIntent) -> None:
        """Carry an intent forward from whatever step it reached.

        Each step is claimed with a conditional update in the same commit as
        its ledger change, so two sessions resuming one intent apply it once.
        """
        source_delta, destination_delta = _deltas(transfer, intent.operation)
        applying = intent.operation == IntentOperation.APPLY.value
        intent_id, transfer_id, operation = intent.id, transfer.id, intent.operation

        while intent.step != IntentStep.COMPLETED.value:
            current = intent.step
            target = (
                IntentStep.SOURCE_DONE.value
                if current == IntentStep.STARTED.value
                else IntentStep.COMPLETED.value
            )
            if not await self._advance_step(intent_id, current, target):
                await self.db.rollback()
                logger.info(
                    "Transfer %s %s intent moved past %s elsewhere, reloading",
                    transfer_id,
                    operation,
                    current,
                )
                transfer = await self._get(transfer_id)
                intent = await self.db.get(
                    TransferIntent, intent_id, populate_existing=True
                )
                if intent is None:
                    return
                continue

            if current == IntentStep.STARTED.value:
                if applying:
                    await ledger.apply_delta(
                        self.db,
                        transfer.asset_id,
                        source_delta,
                        require_available=transfer.quantity,
                    )
                else:
                    await ledger.compensate(self.db, transfer.asset_id, source_delta)
            elif applying:
                await self._apply_destination(transfer, destination_delta)
            else:
                await ledger.compensate(
                    self.db, transfer.destination_asset_id, destination_delta
                )
            await self.db.commit()
            intent = await self.db.get(TransferIntent, intent_id, populate_existing=True)

        logger.debug(
            "Transfer %s %s intent completed (qty=%s, %s -> %s)",
            transfer_id,
            operation,
            transfer.quantity,
            transfer.from_base,
            transfer.to_base,
        )

    async def _apply_destination(self, transfer: Transfer, delta: AssetDelta) -> None:
        try:
            await ledger.apply_delta(self.db, transfer.destination_asset_id, delta)
        except NotFoundError:
            # Destination was deleted in between; provision it again
            lookup = await ledger.find_or_create(
                self.db, transfer.asset_name, transfer.asset_type, transfer.to_base
            )
            logger.warning(
                "Destination asset %s of transfer %s is gone, re-provisioned as %s",
                transfer.destination_asset_id,
                transfer.id,
                lookup.asset.id,
            )
            transfer.destination_asset_id = lookup.asset.id
            await ledger.apply_delta(self.db, lookup.asset.id, delta)

    async def _open_intents(self, transfer_id: int | None = None) -> list[TransferIntent]:
        query = select(TransferIntent).where(
            TransferIntent.step != IntentStep.COMPLETED.value
        )
        if transfer_id is not None:
            query = query.where(TransferIntent.transfer_id == transfer_id)
        result = await self.db.execute(query.order_by(TransferIntent.id))
        return list(result.scalars().all())

    async def _finish_open_intents(self, transfer: Transfer) -> None:
        for intent in await self._open_intents(transfer.id):
            await self._run_intent(transfer, intent)

    async def recover_incomplete(self) -> int:
        """Finish every transfer intent that a crash left half-applied.

        Safe to run repeatedly; returns the number of intents completed.
        """
        recovered = 0
        pending = [(i.id, i.transfer_id) for i in await self._open_intents()]
        for intent_id, transfer_id in pending:
            intent = await self.db.get(TransferIntent, intent_id, populate_existing=True)
            if intent is None or intent.step == IntentStep.COMPLETED.value:
                continue
            operation, step_before = intent.operation, intent.step
            try:
                transfer = await self._get(transfer_id)
                await self._run_intent(transfer, intent)
            except (AppException, SQLAlchemyError):
                await self.db.rollback()
                logger.exception(
                    "Could not recover %s intent of transfer %s at step %s",
                    operation,
                    transfer_id,
                    step_before,
                )
                continue

            recovered += 1
            logger.info(
                "Recovered %s intent of transfer %s from step %s",
                operation,
                transfer_id,
                step_before,
            )
            await self.activity.record(
                ActivityAction.RECOVER,
                Transfer.resource_type,
                transfer_id,
                details={"operation": operation, "from_step": step_before},
            )
        return recovered

    # --- Queries ---

    async def get_transfer(self, transfer_id: int, principal: Principal) -> Transfer:
        transfer = await self._get(transfer_id)
        ensure_access(
            principal, Action.TRANSFER_READ, (transfer.from_base, transfer.to_base)
        )
        return transfer

    async def list_transfers(
        self, filters: TransferFilters, principal: Principal
    ) -> tuple[list[Transfer], int]:
        """List transfers; base-scoped principals see those from or to their base."""
        query = select(Transfer)

        base = scope_base(principal, Action.TRANSFER_READ)
        if base:
            query = query.where(or_(Transfer.from_base == base, Transfer.to_base == base))
        if filters.from_base:
            query = query.where(Transfer.from_base == filters.from_base)
        if filters.to_base:
            query = query.where(Transfer.to_base == filters.to_base)
        if filters.status:
            query = query.where(Transfer.status == filters.status.value)
        if filters.date_from:
            query = query.where(Transfer.transfer_date >= filters.date_from)
        if filters.date_to:
            query = query.where(Transfer.transfer_date <= filters.date_to)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(Transfer.transfer_date.desc(), Transfer.id.desc())
        query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    # --- Transitions ---

    async def create_transfer(
        self, data: TransferCreate, principal: Principal
    ) -> TransferResult:
        """Create a Pending transfer and move the quantity between bases at once.

        The source quantity is reserved now so two transfers cannot send the
        same units.
        """
        from_base = data.from_base.strip()
        to_base = data.to_base.strip()
        if data.quantity <= 0:
            raise InvalidQuantityError("Quantity must be positive", requested=data.quantity)
        if from_base == to_base:
            raise ValidationError("Source and destination base must differ", field="to_base")
        ensure_access(principal, Action.TRANSFER_CREATE, from_base)

        source = await ledger.get_asset(self.db, data.asset_id)
        if not source:
            raise NotFoundError("Asset", data.asset_id)
        if source.base != from_base:
            raise BaseMismatchError(source.id, source.base, from_base)
        if source.available < data.quantity:
            raise InsufficientQuantityError(source.id, data.quantity, source.available)

        lookup = await ledger.find_or_create(self.db, source.name, source.type, to_base)

        transfer = Transfer(
            asset_id=source.id,
            destination_asset_id=lookup.asset.id,
            asset_name=source.name,
            asset_type=source.type,
            from_base=from_base,
            to_base=to_base,
            quantity=data.quantity,
            status=TransferStatus.PENDING.value,
            transfer_date=data.transfer_date or date.today(),
            notes=append_note(None, data.notes, principal.username),
            transferred_by_id=principal.user_id,
        )
        self.db.add(transfer)
        await self.db.flush()

        intent = TransferIntent(
            transfer_id=transfer.id,
            operation=IntentOperation.APPLY.value,
            step=IntentStep.STARTED.value,
        )
        self.db.add(intent)
        await self.db.flush()

        try:
            await self._run_intent(transfer, intent)
        except InsufficientQuantityError:
            # Lost a race for the same units; nothing of this transfer is kept
            await self.db.rollback()
            raise

        await self.activity.record(
            ActivityAction.CREATE,
            Transfer.resource_type,
            transfer.id,
            details={
                "asset_id": transfer.asset_id,
                "destination_asset_id": transfer.destination_asset_id,
                "destination_created": lookup.created,
                "from_base": from_base,
                "to_base": to_base,
                "quantity": transfer.quantity,
            },
            principal=principal,
        )
        source, destination = await self._assets(transfer)
        return transfer, source, destination

    async def approve_transfer(
        self, transfer_id: int, principal: Principal, notes: str | None = None
    ) -> TransferResult:
        """Pending -> Completed. Balances were already moved at creation."""
        transfer = await self._get(transfer_id)
        ensure_access(principal, Action.TRANSFER_APPROVE, transfer.to_base)
        if transfer.status != TransferStatus.PENDING.value:
            raise InvalidTransitionError(
                "Transfer", transfer.status, TransferStatus.COMPLETED.value
            )

        await self._finish_open_intents(transfer)

        claimed = await claim_status(
            self.db,
            Transfer,
            transfer.id,
            [TransferStatus.PENDING.value],
            {
                "status": TransferStatus.COMPLETED.value,
                "approved_by_id": principal.user_id,
                "completed_date": date.today(),
            },
        )
        if not claimed:
            current = await self._get(transfer.id)
            raise InvalidTransitionError(
                "Transfer", current.status, TransferStatus.COMPLETED.value
            )

        transfer = await self._get(transfer.id)
        transfer.notes = append_note(transfer.notes, notes, principal.username)
        await self.db.commit()

        await self.activity.record(
            ActivityAction.APPROVE,
            Transfer.resource_type,
            transfer.id,
            details={"to_base": transfer.to_base, "quantity": transfer.quantity},
            principal=principal,
        )
        source, destination = await self._assets(transfer)
        return transfer, source, destination

    async def cancel_transfer(
        self, transfer_id: int, principal: Principal, notes: str | None = None
    ) -> TransferResult:
        """Pending -> Cancelled, reversing both creation-time deltas."""
        transfer = await self._get(transfer_id)
        ensure_access(principal, Action.TRANSFER_CANCEL, transfer.from_base)
        if transfer.status != TransferStatus.PENDING.value:
            raise AlreadyTerminalError("Transfer", transfer.status)

        # Never revert a side that was not applied
        await self._finish_open_intents(transfer)

        claimed = await claim_status(
            self.db,
            Transfer,
            transfer.id,
            [TransferStatus.PENDING.value],
            {"status": TransferStatus.CANCELLED.value},
        )
        if not claimed:
            current = await self._get(transfer.id)
            raise AlreadyTerminalError("Transfer", current.status)

        transfer = await self._get(transfer.id)
        transfer.notes = append_note(transfer.notes, notes, principal.username)
        intent = TransferIntent(
            transfer_id=transfer.id,
            operation=IntentOperation.REVERT.value,
            step=IntentStep.STARTED.value,
        )
        self.db.add(intent)
        await self.db.flush()

        await self._run_intent(transfer, intent)

        await self.activity.record(
            ActivityAction.CANCEL,
            Transfer.resource_type,
            transfer.id,
            details={"from_base": transfer.from_base, "quantity": transfer.quantity},
            principal=principal,
        )
        source, destination = await self._assets(transfer)
        return transfer, source, destination
