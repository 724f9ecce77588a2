"""Purchase models."""

from datetime import date
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import BigInteger, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mams.core.audit import ResourceType
from mams.core.database.base import BaseModel


class PurchaseStatus(StrEnum):
    """Purchase status enumeration."""

    ORDERED = "Ordered"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class Purchase(BaseModel):
    """Acquisition of an asset quantity from a supplier.

    asset_id stays empty until delivery resolves (or provisions) the asset
    record for (asset_name, asset_type, base).
    """

    __tablename__ = "purchases"

    resource_type = ResourceType.PURCHASE

    asset_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True, index=True)
    asset_name: Mapped[str] = mapped_column(String(200), nullable=False)
    asset_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    base: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    supplier: Mapped[str] = mapped_column(String(300), nullable=False)
    invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PurchaseStatus.ORDERED.value, index=True
    )
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    purchased_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )
    approved_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )
