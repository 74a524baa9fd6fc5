"""Operational settings (shift control gates)."""

from fastapi import APIRouter

from stockrecon.db.session import DbSession
from stockrecon.schemas.operations import SettingUpdate
from stockrecon.services.settings_service import SettingsService

router = APIRouter()


@router.get("")
def get_settings(db: DbSession):
    return SettingsService(db).get_all()


@router.put("/{key}")
def update_setting(key: str, body: SettingUpdate, db: DbSession):
    return {"key": key, "value": SettingsService(db).set(key, body.value)}
