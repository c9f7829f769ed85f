from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..database import get_db
from ..errors import db_failure
from ..models.common import utcnow
from ..models.member import Member, MemberStatus
from ..models.zone import SaleGroup, Zone
from ..services.reporting import count_members, zone_member_filter
from .sale_groups import create_sale_group_in_zone, sale_group_payload
from .schemas import SaleGroupCreate, ZoneCreate, ZoneUpdate
from .serializers import member_summary, serialize_zone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/zones", tags=["zones"])

NAME_TAKEN = "Zone with this name already exists"


# -----------------------------
# Helpers
# -----------------------------

def _get_zone_or_404(db: Session, zone_id: str) -> Zone:
    z = db.get(Zone, zone_id)
    if not z:
        raise HTTPException(status_code=404, detail="Zone not found")
    return z


def _name_taken(db: Session, name: str, *, exclude_id: Optional[str] = None) -> bool:
    q = select(Zone.id).where(func.lower(Zone.name) == name.lower())
    if exclude_id:
        q = q.where(Zone.id != exclude_id)
    return db.exec(q).first() is not None


def _commit(db: Session, fallback: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if "zones.name" in str(getattr(e, "orig", None) or e):
            raise HTTPException(status_code=409, detail=NAME_TAKEN)
        raise db_failure(e, fallback)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Zone write failed")
        raise db_failure(e, fallback)


def _sale_groups(db: Session, zone_id: str, *, active_only: bool = False) -> List[SaleGroup]:
    q = select(SaleGroup).where(SaleGroup.zone_id == zone_id)
    if active_only:
        q = q.where(SaleGroup.is_active == True)  # noqa: E712
    return list(db.exec(q.order_by(SaleGroup.name)).all())


def _zone_payload(db: Session, z: Zone) -> Dict[str, Any]:
    groups = [sale_group_payload(db, g) for g in _sale_groups(db, z.id)]
    out = serialize_zone(z)
    out["saleGroups"] = groups
    out["saleGroupCount"] = len(groups)
    out["memberCount"] = count_members(db, Member.status == MemberStatus.ACTIVE, zone_member_filter(z.id))
    return out


def _zone_members(db: Session, zone_id: str) -> List[Dict[str, Any]]:
    members = db.exec(
        select(Member)
        .where(Member.status == MemberStatus.ACTIVE, zone_member_filter(zone_id))
        .order_by(Member.first_name, Member.last_name)
    ).all()
    groups = {g.id: g for g in _sale_groups(db, zone_id)}

    out = []
    for m in members:
        item = member_summary(m, "email", "phone")
        group = groups.get(m.sale_group_id) if m.sale_group_id else None
        item["saleGroupId"] = m.sale_group_id
        item["saleGroupName"] = group.name if group else None
        out.append(item)
    return out


# -----------------------------
# Zones
# -----------------------------

@router.get("")
def list_zones(db: Session = Depends(get_db)) -> Dict[str, Any]:
    zones = db.exec(select(Zone).order_by(Zone.name)).all()
    items = [_zone_payload(db, z) for z in zones]
    return {"success": True, "zones": items, "total": len(items)}


@router.post("")
def create_zone(payload: ZoneCreate, db: Session = Depends(get_db)) -> JSONResponse:
    if not payload.name:
        raise HTTPException(status_code=400, detail="Zone name is required")

    if _name_taken(db, payload.name):
        raise HTTPException(status_code=409, detail=NAME_TAKEN)

    zone = Zone(
        name=payload.name,
        description=payload.description,
        leader_name=payload.leader_name,
        notes=payload.notes,
    )
    db.add(zone)
    _commit(db, "Failed to create zone")
    db.refresh(zone)

    logger.info("Created zone %s (%s)", zone.name, zone.id)
    return JSONResponse(status_code=201, content={"success": True, "zone": _zone_payload(db, zone)})


@router.get("/{zone_id}")
def get_zone(zone_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    z = _get_zone_or_404(db, zone_id)
    out = _zone_payload(db, z)
    out["members"] = _zone_members(db, z.id)
    return {"success": True, "zone": out}


@router.put("/{zone_id}")
def update_zone(zone_id: str, payload: ZoneUpdate, db: Session = Depends(get_db)) -> Dict[str, Any]:
    z = _get_zone_or_404(db, zone_id)
    sent = payload.model_fields_set

    if payload.leader_id and not db.get(Member, payload.leader_id):
        raise HTTPException(status_code=404, detail="Leader member not found")

    if payload.name and payload.name != z.name:
        if _name_taken(db, payload.name, exclude_id=z.id):
            raise HTTPException(status_code=409, detail=NAME_TAKEN)
        z.name = payload.name
    for field in ("description", "leader_name", "notes", "leader_id"):
        if field in sent:
            setattr(z, field, getattr(payload, field))
    if payload.is_active is not None:
        z.is_active = payload.is_active

    z.updated_at = utcnow()
    db.add(z)
    _commit(db, "Failed to update zone")
    db.refresh(z)

    out = _zone_payload(db, z)
    if z.leader_id:
        leader = db.get(Member, z.leader_id)
        out["leader"] = member_summary(leader, "email", "phone") if leader else None
    return {"success": True, "zone": out}


@router.delete("/{zone_id}")
def delete_zone(zone_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    z = _get_zone_or_404(db, zone_id)

    if _sale_groups(db, z.id):
        raise HTTPException(
            status_code=400,
            detail="Cannot delete zone with sale groups. Please delete sale groups first.",
        )
    if count_members(db, zone_member_filter(z.id)):
        raise HTTPException(
            status_code=400,
            detail="Cannot delete zone with members. Please reassign members first.",
        )

    db.delete(z)
    _commit(db, "Failed to delete zone")

    logger.info("Deleted zone %s", zone_id)
    return {"success": True, "message": "Zone deleted successfully"}


# -----------------------------
# Zone sale groups
# -----------------------------

@router.get("/{zone_id}/sale-groups")
def list_zone_sale_groups(zone_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    z = _get_zone_or_404(db, zone_id)
    items = [sale_group_payload(db, g, member_fields=("email", "phone")) for g in _sale_groups(db, z.id, active_only=True)]
    return {"success": True, "saleGroups": items, "total": len(items)}


@router.post("/{zone_id}/sale-groups")
def create_zone_sale_group(zone_id: str, payload: SaleGroupCreate, db: Session = Depends(get_db)) -> JSONResponse:
    if not payload.name or not payload.leader_name:
        raise HTTPException(status_code=400, detail="Name and leader name are required")
    return create_sale_group_in_zone(db, zone_id, payload)
