from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..database import get_db
from ..errors import db_failure
from ..models.church_setting import ChurchSetting
from ..models.common import utcnow
from .schemas import SettingUpsert, SettingValue
from .serializers import iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])


def _serialize_setting(s: ChurchSetting) -> Dict[str, Any]:
    return {
        "id": s.id,
        "key": s.key,
        "value": s.value,
        "category": s.category,
        "description": s.description,
        "isPublic": bool(s.is_public),
        "createdAt": iso(s.created_at),
        "updatedAt": iso(s.updated_at),
    }


def upsert_setting(db: Session, key: str, data: SettingValue) -> ChurchSetting:
    """
    Insert or overwrite one key. Missing category/description/isPublic reset
    to their defaults, the same as a fresh insert.
    """
    s = db.exec(select(ChurchSetting).where(ChurchSetting.key == key)).first()
    if s is None:
        s = ChurchSetting(key=key)
    s.value = data.text_value()
    s.category = data.category or "general"
    s.description = data.description or None
    s.is_public = bool(data.is_public)
    s.updated_at = utcnow()
    db.add(s)
    return s


@router.get("")
def list_settings(db: Session = Depends(get_db)) -> Dict[str, Any]:
    rows = db.exec(select(ChurchSetting).order_by(ChurchSetting.category, ChurchSetting.key)).all()
    return {
        "success": True,
        "settings": {
            s.key: {
                "value": s.value,
                "category": s.category,
                "description": s.description,
                "isPublic": bool(s.is_public),
                "id": s.id,
            }
            for s in rows
        },
        "total": len(rows),
    }


@router.post("")
def save_settings(body: Any = Body(None), db: Session = Depends(get_db)) -> Dict[str, Any]:
    settings_map = body.get("settings") if isinstance(body, dict) else None
    if not isinstance(settings_map, dict):
        raise HTTPException(status_code=400, detail="Settings object is required")

    try:
        items = {
            str(key): SettingValue.model_validate(data if isinstance(data, dict) else {"value": data})
            for key, data in settings_map.items()
        }
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid setting: {e.errors()[0].get('msg', 'invalid value')}")

    try:
        for key, data in items.items():
            upsert_setting(db, key, data)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Settings update failed")
        raise db_failure(e, "Failed to update church settings. Please try again.")

    return {
        "success": True,
        "message": "Church settings updated successfully",
        "updatedCount": len(items),
    }


@router.put("")
def save_setting(payload: SettingUpsert, db: Session = Depends(get_db)) -> Dict[str, Any]:
    key = (payload.key or "").strip()
    if not key:
        raise HTTPException(status_code=400, detail="Setting key is required")

    try:
        s = upsert_setting(db, key, payload)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Setting update failed for %s", key)
        raise db_failure(e, "Failed to update setting. Please try again.")
    db.refresh(s)

    return {"success": True, "setting": _serialize_setting(s), "message": "Setting updated successfully"}


@router.delete("")
def delete_setting(
    *,
    db: Session = Depends(get_db),
    key: Optional[str] = Query(None),
) -> Dict[str, Any]:
    if not key:
        raise HTTPException(status_code=400, detail="Setting key is required")

    s = db.exec(select(ChurchSetting).where(ChurchSetting.key == key)).first()
    if s is None:
        raise HTTPException(status_code=404, detail="Setting not found")

    db.delete(s)
    db.commit()
    return {"success": True, "message": "Setting deleted successfully"}
