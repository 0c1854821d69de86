"""
Site setting repository functions (string key/value store).
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from bazaar.db import models


def get_setting(db: Session, key: str) -> Optional[str]:
    row = db.query(models.SiteSetting).filter(models.SiteSetting.setting_key == key).first()
    return row.setting_value if row else None


def get_settings(db: Session, keys: Iterable[str]) -> Dict[str, Optional[str]]:
    rows = db.query(models.SiteSetting).filter(models.SiteSetting.setting_key.in_(list(keys))).all()
    return {row.setting_key: row.setting_value for row in rows}


def list_settings(db: Session) -> List[models.SiteSetting]:
    return db.query(models.SiteSetting).order_by(models.SiteSetting.setting_key).all()


def set_setting(db: Session, key: str, value: Optional[str]) -> models.SiteSetting:
    row = db.query(models.SiteSetting).filter(models.SiteSetting.setting_key == key).first()
    if row is None:
        row = models.SiteSetting(setting_key=key, setting_value=value)
        db.add(row)
    else:
        row.setting_value = value
    db.commit()
    db.refresh(row)
    return row
