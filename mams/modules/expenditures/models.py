"""Expenditure models."""

from datetime import date
from enum import StrEnum

from sqlalchemy import BigInteger, Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mams.core.audit import ResourceType
from mams.core.database.base import BaseModel


class ExpenditureReason(StrEnum):
    TRAINING = "Training"
    OPERATION = "Operation"
    MAINTENANCE = "Maintenance"
    DAMAGED = "Damaged"
    LOST = "Lost"
    OTHER = "Other"


class Expenditure(BaseModel):
    """Consumption of an asset quantity. Deleting it gives the units back."""

    __tablename__ = "expenditures"

    resource_type = ResourceType.EXPENDITURE

    asset_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    asset_name: Mapped[str] = mapped_column(String(200), nullable=False)
    asset_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    base: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    expended_by_name: Mapped[str] = mapped_column(String(200), nullable=False)
    expended_by_rank: Mapped[str] = mapped_column(String(100), nullable=False)
    expended_by_service_id: Mapped[str] = mapped_column(String(100), nullable=False)

    operation_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    expenditure_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    authorized_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )
