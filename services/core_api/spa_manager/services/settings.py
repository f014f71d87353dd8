from __future__ import annotations

from copy import deepcopy
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select

from spa_manager.config import get_settings
from spa_manager.db import SessionLocal, Setting
from spa_manager.services.view_models import DEFAULT_APPOINTMENT_SEARCH_FIELDS, DEFAULT_SALES_SEARCH_FIELDS

SETTINGS_KEY = 'app_settings'
SALES_SEARCHABLE = ('client_name', 'service_label', 'seller_name', 'product_name', 'payment_method', 'notes')
APPOINTMENT_SEARCHABLE = ('client_name', 'service_type', 'notes', 'status')
DEFAULT_SETTINGS = {
    'timezone': 'America/New_York',
    'default_branch_id': 'all',
    'sales_search_fields': list(DEFAULT_SALES_SEARCH_FIELDS),
    'appointment_search_fields': list(DEFAULT_APPOINTMENT_SEARCH_FIELDS),
    'branch_labels': {'1': 'Hialeah', '2': 'Flagler'},
}


def _valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def _pick_fields(value: object, allowed: tuple[str, ...]) -> list[str] | None:
    if not isinstance(value, list):
        return None
    picked = [str(x) for x in value if str(x) in allowed]
    return picked or None


def _merge_defaults(payload: dict | None) -> dict:
    merged = deepcopy(DEFAULT_SETTINGS)
    incoming = payload or {}

    tz = incoming.get('timezone')
    if isinstance(tz, str) and tz.strip() and _valid_timezone(tz.strip()):
        merged['timezone'] = tz.strip()

    branch = incoming.get('default_branch_id')
    if branch is not None and str(branch).strip():
        merged['default_branch_id'] = str(branch).strip()

    sales_fields = _pick_fields(incoming.get('sales_search_fields'), SALES_SEARCHABLE)
    if sales_fields:
        merged['sales_search_fields'] = sales_fields

    appointment_fields = _pick_fields(incoming.get('appointment_search_fields'), APPOINTMENT_SEARCHABLE)
    if appointment_fields:
        merged['appointment_search_fields'] = appointment_fields

    if isinstance(incoming.get('branch_labels'), dict):
        for key, value in incoming['branch_labels'].items():
            if isinstance(value, str) and value.strip():
                merged['branch_labels'][str(key)] = value.strip()

    return merged


def get_settings_payload() -> dict:
    with SessionLocal() as session:
        row = session.scalar(select(Setting).where(Setting.key == SETTINGS_KEY))
        if row is None:
            row = Setting(key=SETTINGS_KEY, value_json=deepcopy(DEFAULT_SETTINGS))
            session.add(row)
            session.commit()
            session.refresh(row)
            return row.value_json

        merged = _merge_defaults(row.value_json)
        if merged != row.value_json:
            row.value_json = merged
            session.commit()
            session.refresh(row)
        return row.value_json


def update_settings_payload(payload: dict) -> dict:
    normalized = _merge_defaults(payload)
    with SessionLocal() as session:
        row = session.scalar(select(Setting).where(Setting.key == SETTINGS_KEY))
        if row is None:
            row = Setting(key=SETTINGS_KEY, value_json=normalized)
            session.add(row)
        else:
            row.value_json = normalized
        session.commit()
        session.refresh(row)
        return row.value_json


def resolve_timezone(tz: str | None = None) -> str:
    """Explicit zone, else the persisted one, else the configured default."""
    return tz or get_settings_payload().get('timezone') or get_settings().default_tz
