from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..database import get_db
from ..errors import db_failure
from ..models.common import utcnow
from ..models.member import Member, MemberStatus
from ..models.zone import SaleGroup, Zone
from .schemas import SaleGroupCreate, SaleGroupUpdate
from .serializers import member_summary, serialize_sale_group

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sale-groups", tags=["sale_groups"])

NAME_TAKEN = "Sale group with this name already exists in this zone"
# SQLite reports the columns, Postgres the constraint name
NAME_CONSTRAINT_MARKERS = ("sale_groups.zone_id, sale_groups.name", "uq_sale_group_zone_name")


# -----------------------------
# Shared helpers (also used by zone routes)
# -----------------------------

def active_members_of_group(db: Session, group_id: str) -> List[Member]:
    return list(
        db.exec(
            select(Member)
            .where(Member.sale_group_id == group_id, Member.status == MemberStatus.ACTIVE)
            .order_by(Member.first_name, Member.last_name)
        ).all()
    )


def sale_group_payload(
    db: Session,
    group: SaleGroup,
    *,
    zone: Optional[Zone] = None,
    member_fields: tuple = (),
) -> Dict[str, Any]:
    members = active_members_of_group(db, group.id)
    out = serialize_sale_group(group)
    out["members"] = [member_summary(m, *member_fields) for m in members]
    out["memberCount"] = len(members)
    if zone is not None:
        out["zone"] = {"id": zone.id, "name": zone.name, "leaderName": zone.leader_name}
    return out


def _group_name_taken(db: Session, zone_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
    q = select(SaleGroup.id).where(SaleGroup.zone_id == zone_id, func.lower(SaleGroup.name) == name.lower())
    if exclude_id:
        q = q.where(SaleGroup.id != exclude_id)
    return db.exec(q).first() is not None


def commit_sale_group(db: Session, fallback: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        msg = str(getattr(e, "orig", None) or e)
        if any(marker in msg for marker in NAME_CONSTRAINT_MARKERS):
            raise HTTPException(status_code=409, detail=NAME_TAKEN)
        raise db_failure(e, fallback)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Sale group write failed")
        raise db_failure(e, fallback)


def create_sale_group_in_zone(db: Session, zone_id: str, payload: SaleGroupCreate) -> JSONResponse:
    zone = db.get(Zone, zone_id)
    if not zone:
        raise HTTPException(status_code=404, detail="Zone not found")

    if _group_name_taken(db, zone.id, payload.name):
        raise HTTPException(status_code=409, detail=NAME_TAKEN)

    group = SaleGroup(name=payload.name, leader_name=payload.leader_name, zone_id=zone.id, notes=payload.notes)
    db.add(group)
    commit_sale_group(db, "Failed to create sale group")
    db.refresh(group)

    logger.info("Created sale group %s in zone %s", group.name, zone.name)
    return JSONResponse(
        status_code=201,
        content={"success": True, "saleGroup": sale_group_payload(db, group, zone=zone)},
    )


# -----------------------------
# Routes
# -----------------------------

@router.get("")
def list_sale_groups(
    *,
    db: Session = Depends(get_db),
    zone_id: Optional[str] = Query(None, alias="zoneId"),
) -> Dict[str, Any]:
    q = select(SaleGroup).where(SaleGroup.is_active == True)  # noqa: E712
    if zone_id:
        q = q.where(SaleGroup.zone_id == zone_id)
    groups = db.exec(q.order_by(SaleGroup.name)).all()

    zones = {}
    zone_ids = {g.zone_id for g in groups}
    if zone_ids:
        zones = {z.id: z for z in db.exec(select(Zone).where(Zone.id.in_(zone_ids))).all()}

    items = [sale_group_payload(db, g, zone=zones.get(g.zone_id)) for g in groups]
    return {"success": True, "saleGroups": items, "total": len(items)}


@router.post("")
def create_sale_group(payload: SaleGroupCreate, db: Session = Depends(get_db)) -> JSONResponse:
    if not payload.name or not payload.leader_name or not payload.zone_id:
        raise HTTPException(status_code=400, detail="Name, leader name, and zone ID are required")
    return create_sale_group_in_zone(db, payload.zone_id, payload)


def _get_group_or_404(db: Session, group_id: str) -> SaleGroup:
    g = db.get(SaleGroup, group_id)
    if not g:
        raise HTTPException(status_code=404, detail="Sale group not found")
    return g


@router.get("/{group_id}")
def get_sale_group(group_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    g = _get_group_or_404(db, group_id)
    zone = db.get(Zone, g.zone_id)
    return {
        "success": True,
        "saleGroup": sale_group_payload(db, g, zone=zone, member_fields=("email", "phone", "membershipDate")),
    }


@router.put("/{group_id}")
def update_sale_group(group_id: str, payload: SaleGroupUpdate, db: Session = Depends(get_db)) -> Dict[str, Any]:
    g = _get_group_or_404(db, group_id)
    sent = payload.model_fields_set

    if payload.name and payload.name != g.name:
        if _group_name_taken(db, g.zone_id, payload.name, exclude_id=g.id):
            raise HTTPException(status_code=409, detail=NAME_TAKEN)
        g.name = payload.name
    if payload.leader_name:
        g.leader_name = payload.leader_name
    if "notes" in sent:
        g.notes = payload.notes
    if payload.is_active is not None:
        g.is_active = payload.is_active

    g.updated_at = utcnow()
    db.add(g)
    commit_sale_group(db, "Failed to update sale group")
    db.refresh(g)

    return {"success": True, "saleGroup": sale_group_payload(db, g, zone=db.get(Zone, g.zone_id))}


@router.delete("/{group_id}")
def delete_sale_group(group_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    g = _get_group_or_404(db, group_id)

    # Any status counts: inactive members still point at the group
    attached = db.exec(select(func.count()).select_from(Member).where(Member.sale_group_id == g.id)).one()
    if attached:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete sale group with members. Please move members to another sale group first.",
        )

    db.delete(g)
    commit_sale_group(db, "Failed to delete sale group")

    logger.info("Deleted sale group %s", group_id)
    return {"success": True, "message": "Sale group deleted successfully"}
