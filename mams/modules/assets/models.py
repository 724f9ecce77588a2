"""Asset balance records."""

from enum import StrEnum

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mams.core.audit import ResourceType
from mams.core.database.base import BaseModel


class AssetType(StrEnum):
    """Asset category enumeration."""

    VEHICLE = "Vehicle"
    WEAPON = "Weapon"
    AMMUNITION = "Ammunition"
    EQUIPMENT = "Equipment"
    OTHER = "Other"


# Counter columns that movements may change; everything else is identity or derived
COUNTER_FIELDS = ("purchases", "transfer_in", "transfer_out", "assigned", "expended")


class AssetRecord(BaseModel):
    """Inventory counters for one (name, type, base).

    closing_balance and available are derived and are only ever written by
    the ledger together with the counters they depend on.
    """

    __tablename__ = "asset_records"
    __table_args__ = (
        UniqueConstraint("name", "type", "base", name="uq_asset_records_name_type_base"),
    )

    resource_type = ResourceType.ASSET

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    base: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    opening_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    purchases: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    transfer_in: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    transfer_out: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    assigned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expended: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Derived
    closing_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def net_movement(self) -> int:
        """Quantity gained or lost through purchases and transfers."""
        return self.purchases + self.transfer_in - self.transfer_out
