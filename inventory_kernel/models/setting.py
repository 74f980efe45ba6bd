"""
Module: inventory_kernel.models.setting
Responsibility: ORM persistence for the store-wide settings record.
Architecture position: Kernel > Models.  May import from db/ only.

There is at most one row.  When it is absent, SettingsService falls back to
the defaults shipped in inventory_config/defaults.yaml.
"""

from decimal import Decimal

from sqlalchemy import Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class Setting(TrackedBase):
    """Store-wide defaults for day-end settlement and stock alerts."""

    __tablename__ = "settings"

    # Added to MRP for BELT sales without an explicit selling price
    default_belt_markup_rupees: Mapped[Decimal] = mapped_column(
        Numeric(38, 4),
        nullable=False,
    )

    default_low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Setting markup={self.default_belt_markup_rupees} "
            f"threshold={self.default_low_stock_threshold}>"
        )
