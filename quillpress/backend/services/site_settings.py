"""Site settings stored in app_settings under a single key."""
from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from quillpress.backend.models.app_setting import AppSetting

SETTINGS_KEY = "site"
DEFAULTS: dict[str, Any] = {
    "title": "",
    "members_reply_address": "newsletter",  # newsletter|support
    "email_track_opens": True,
    "email_verification_required": False,
}


def get_site_settings(db: Session) -> dict[str, Any]:
    row = db.get(AppSetting, SETTINGS_KEY)
    data = dict(DEFAULTS)
    if row and row.value_json:
        data.update({k: v for k, v in row.value_json.items() if k in DEFAULTS})
    return data


def get_site_setting(db: Session, key: str) -> Any:
    return get_site_settings(db).get(key)


def set_site_settings(db: Session, **values: Any) -> dict[str, Any]:
    unknown = set(values) - set(DEFAULTS)
    if unknown:
        raise KeyError(f"unknown site settings: {', '.join(sorted(unknown))}")
    row = db.get(AppSetting, SETTINGS_KEY)
    data = dict(row.value_json or {}) if row else {}
    data.update(values)
    if not row:
        row = AppSetting(key=SETTINGS_KEY, value_json=data)
        db.add(row)
    else:
        row.value_json = dict(data)
    db.commit()
    return get_site_settings(db)
