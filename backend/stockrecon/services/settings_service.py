"""Operational settings stored as JSON rows in ``app_settings``."""

import logging
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockrecon.core.exceptions import ValidationFailed
from stockrecon.models.operations import AppSetting

logger = logging.getLogger(__name__)

SHIFT_CONTROLS = "shift_controls"

DEFAULTS: Dict[str, Any] = {
    SHIFT_CONTROLS: {
        "require_opening_count": False,
        "require_closing_count": False,
        "require_cash_declaration": False,
    },
}


class SettingsService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Any:
        """Stored value merged over the default for known keys."""
        row = self.db.query(AppSetting).filter(AppSetting.key == key).first()
        default = DEFAULTS.get(key)
        if row is None:
            return dict(default) if isinstance(default, dict) else default
        if isinstance(default, dict) and isinstance(row.value, dict):
            return {**default, **row.value}
        return row.value

    def get_all(self) -> Dict[str, Any]:
        values = {key: self.get(key) for key in DEFAULTS}
        for row in self.db.query(AppSetting).all():
            values[row.key] = self.get(row.key)
        return values

    def set(self, key: str, value: Any) -> Any:
        if not key or not key.strip():
            raise ValidationFailed("Setting key is required")
        default = DEFAULTS.get(key)
        if isinstance(default, dict):
            if not isinstance(value, dict):
                raise ValidationFailed(f"Setting {key} must be an object")
            unknown = set(value) - set(default)
            if unknown:
                raise ValidationFailed(f"Unknown fields for {key}: {sorted(unknown)}")

        row = self.db.query(AppSetting).filter(AppSetting.key == key).first()
        if row is None:
            savepoint = self.db.begin_nested()
            try:
                row = AppSetting(key=key, value=value)
                self.db.add(row)
                self.db.flush()
                savepoint.commit()
            except IntegrityError:
                savepoint.rollback()
                row = self.db.query(AppSetting).filter(AppSetting.key == key).one()
                row.value = value
        else:
            row.value = value
        self.db.commit()
        logger.info(f"Setting {key} updated")
        return self.get(key)

    def shift_controls(self) -> Dict[str, bool]:
        return {name: bool(flag) for name, flag in self.get(SHIFT_CONTROLS).items()}

