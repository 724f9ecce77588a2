"""Assignment models."""

from datetime import date
from enum import StrEnum

from sqlalchemy import BigInteger, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mams.core.audit import ResourceType
from mams.core.database.base import BaseModel


class AssignmentStatus(StrEnum):
    """Assignment status enumeration."""

    ACTIVE = "Active"
    RETURNED = "Returned"
    LOST = "Lost"
    DAMAGED = "Damaged"


# Terminal statuses reachable through set-status
WRITE_OFF_STATUSES = (AssignmentStatus.LOST, AssignmentStatus.DAMAGED)


class Assignment(BaseModel):
    """Quantity of an asset checked out to a person."""

    __tablename__ = "assignments"

    resource_type = ResourceType.ASSIGNMENT

    asset_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    asset_name: Mapped[str] = mapped_column(String(200), nullable=False)
    asset_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    base: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    returned_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    assigned_to_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    assigned_to_rank: Mapped[str] = mapped_column(String(100), nullable=False)
    assigned_to_service_id: Mapped[str] = mapped_column(String(100), nullable=False)
    purpose: Mapped[str | None] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AssignmentStatus.ACTIVE.value, index=True
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    assigned_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )

    @property
    def outstanding_quantity(self) -> int:
        return self.quantity - self.returned_quantity
