"""Transfer models."""

from datetime import date
from enum import StrEnum

from sqlalchemy import BigInteger, Date, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mams.core.audit import ResourceType
from mams.core.database.base import BaseModel


class TransferStatus(StrEnum):
    """Transfer status enumeration."""

    PENDING = "Pending"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class IntentOperation(StrEnum):
    APPLY = "apply"
    REVERT = "revert"


class IntentStep(StrEnum):
    """Progress of a two-asset ledger update."""

    STARTED = "started"
    SOURCE_DONE = "source_done"
    COMPLETED = "completed"


class Transfer(BaseModel):
    """Movement of an asset quantity from one base to another.

    Both ledger sides are updated when the transfer is created; approval
    only changes the status.
    """

    __tablename__ = "transfers"

    resource_type = ResourceType.TRANSFER

    asset_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    destination_asset_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    asset_name: Mapped[str] = mapped_column(String(200), nullable=False)
    asset_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    from_base: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    to_base: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransferStatus.PENDING.value, index=True
    )
    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)
    completed_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    transferred_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )
    approved_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )


class TransferIntent(BaseModel):
    """Durable progress marker for applying or reverting a transfer's deltas.

    The step is committed in the same transaction as the ledger update it
    describes, so an unfinished intent tells recovery exactly what is left.
    """

    __tablename__ = "transfer_intents"
    __table_args__ = (
        UniqueConstraint("transfer_id", "operation", name="uq_transfer_intents_transfer_op"),
    )

    transfer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("transfers.id"), nullable=False, index=True
    )
    operation: Mapped[str] = mapped_column(String(10), nullable=False)
    step: Mapped[str] = mapped_column(
        String(20), nullable=False, default=IntentStep.STARTED.value, index=True
    )
