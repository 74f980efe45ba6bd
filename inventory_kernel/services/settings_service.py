"""
SettingsService -- read and update the store-wide Setting record.

The record holds the default belt markup (applied to BELT sales without an
explicit price) and the default low-stock threshold.  Reads fall back to
the shipped YAML defaults when no row exists; the first update creates it.
"""

from decimal import Decimal

from sqlalchemy.orm import Session

from inventory_kernel.db.types import ZERO, normalize_money
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import SettingsInfo
from inventory_kernel.exceptions import InvalidSettingError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models import Setting
from inventory_kernel.selectors.settings_selector import SettingsSelector
from inventory_kernel.services.base import TransactionalService

logger = get_logger("services.settings")


class SettingsService(TransactionalService):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        actor_id: str | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, clock=clock, actor_id=actor_id, auto_commit=auto_commit)
        self._selector = SettingsSelector(session)

    def get_settings(self) -> SettingsInfo:
        return self._selector.get_settings()

    def update_settings(
        self,
        default_belt_markup_rupees: Decimal | None = None,
        default_low_stock_threshold: int | None = None,
    ) -> SettingsInfo:
        """
        Change one or both settings, creating the record on first save.

        Raises:
            InvalidSettingError: negative markup or non-positive threshold.
        """
        markup = None
        if default_belt_markup_rupees is not None:
            markup = normalize_money(default_belt_markup_rupees)
            if markup < ZERO:
                raise InvalidSettingError("default_belt_markup_rupees", default_belt_markup_rupees)
        if default_low_stock_threshold is not None and default_low_stock_threshold <= 0:
            raise InvalidSettingError("default_low_stock_threshold", default_low_stock_threshold)

        def body() -> SettingsInfo:
            row = self._selector.get_setting_row()
            if row is None:
                current = self._selector.get_settings()
                row = Setting(
                    default_belt_markup_rupees=current.default_belt_markup_rupees,
                    default_low_stock_threshold=current.default_low_stock_threshold,
                    created_at=self._clock.now(),
                    created_by=self._actor_id,
                )
                self.session.add(row)
            if markup is not None:
                row.default_belt_markup_rupees = markup
            if default_low_stock_threshold is not None:
                row.default_low_stock_threshold = default_low_stock_threshold
            self.session.flush()
            return SettingsInfo(
                default_belt_markup_rupees=row.default_belt_markup_rupees,
                default_low_stock_threshold=row.default_low_stock_threshold,
            )

        return self._run_atomic("settings_update", body)
