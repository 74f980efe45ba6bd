"""
Module: inventory_kernel.selectors.settings_selector
Responsibility: Effective store-wide settings: the Setting row when one has
    been saved, else the shipped YAML defaults.
Architecture position: Kernel > Selectors.  Reads inventory_config for the
    fallback only.

Settings are read per call.  Nothing is held in module state, so a saved
change is visible to the next settlement without a restart.
"""

from sqlalchemy import select

from inventory_config import get_default_settings
from inventory_kernel.db.types import normalize_money
from inventory_kernel.domain.dtos import SettingsInfo
from inventory_kernel.models import Setting
from inventory_kernel.selectors.base import BaseSelector


class SettingsSelector(BaseSelector):
    """Read the single Setting record."""

    def get_setting_row(self) -> Setting | None:
        """The stored row, for services that update it.  Not a DTO."""
        return self.session.scalars(
            select(Setting).order_by(Setting.created_at).limit(1)
        ).first()

    def get_settings(self) -> SettingsInfo:
        row = self.get_setting_row()
        if row is not None:
            return SettingsInfo(
                default_belt_markup_rupees=row.default_belt_markup_rupees,
                default_low_stock_threshold=row.default_low_stock_threshold,
            )
        defaults = get_default_settings()
        return SettingsInfo(
            default_belt_markup_rupees=normalize_money(defaults.default_belt_markup_rupees),
            default_low_stock_threshold=defaults.default_low_stock_threshold,
            is_default=True,
        )
