from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..database import get_db
from ..errors import db_failure
from ..models.common import utcnow
from ..models.member import Member
from ..models.ministry import MemberMinistry, Ministry, MinistryLeader
from ..services.ministry_notes import clean_leaders, compose_notes, parse_notes, replace_leader_lines
from .schemas import MinistryCreate, MinistryMemberAdd, MinistryUpdate
from .serializers import iso, member_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ministries", tags=["ministries"])

NAME_TAKEN = "A ministry with this name already exists"


# -----------------------------
# Helpers
# -----------------------------

def _get_ministry_or_404(db: Session, ministry_id: str) -> Ministry:
    m = db.get(Ministry, ministry_id)
    if not m:
        raise HTTPException(status_code=404, detail="Ministry not found")
    return m


def _get_member_or_404(db: Session, member_id: str) -> Member:
    m = db.get(Member, member_id)
    if not m:
        raise HTTPException(status_code=404, detail="Member not found")
    return m


def _name_taken(db: Session, name: str, *, exclude_id: Optional[str] = None) -> bool:
    q = select(Ministry.id).where(func.lower(Ministry.name) == name.lower())
    if exclude_id:
        q = q.where(Ministry.id != exclude_id)
    return db.exec(q).first() is not None


def _leaders_by_ministry(db: Session, ministry_ids: List[str]) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {mid: [] for mid in ministry_ids}
    if not ministry_ids:
        return out
    rows = db.exec(
        select(MinistryLeader)
        .where(MinistryLeader.ministry_id.in_(ministry_ids))
        .order_by(MinistryLeader.position, MinistryLeader.created_at)
    ).all()
    for r in rows:
        out.setdefault(r.ministry_id, []).append(r.name)
    return out


def _member_counts(db: Session, ministry_ids: List[str]) -> Dict[str, int]:
    if not ministry_ids:
        return {}
    rows = db.exec(
        select(MemberMinistry.ministry_id, func.count())
        .where(MemberMinistry.ministry_id.in_(ministry_ids), MemberMinistry.is_active == True)  # noqa: E712
        .group_by(MemberMinistry.ministry_id)
    ).all()
    return {mid: int(n) for mid, n in rows}


def _serialize_ministry(m: Ministry, *, leader_rows: List[str], member_count: int) -> Dict[str, Any]:
    notes = parse_notes(m.notes)
    return {
        "id": m.id,
        "name": m.name,
        "description": m.description,
        "meetingDay": m.meeting_day,
        "meetingTime": m.meeting_time,
        "location": m.location,
        "capacity": m.capacity,
        "isActive": bool(m.is_active),
        "notes": m.notes,
        # Older rows only have "Leader:" lines in notes
        "leaders": clean_leaders(leader_rows) or notes.leaders,
        "requirements": notes.requirements,
        "contactEmail": notes.contact_email,
        "contactPhone": notes.contact_phone,
        "memberCount": member_count,
        "createdAt": iso(m.created_at),
        "updatedAt": iso(m.updated_at),
    }


def _serialize_many(db: Session, ministries: Iterable[Ministry]) -> List[Dict[str, Any]]:
    ministries = list(ministries)
    ids = [m.id for m in ministries]
    leaders = _leaders_by_ministry(db, ids)
    counts = _member_counts(db, ids)
    return [
        _serialize_ministry(m, leader_rows=leaders.get(m.id, []), member_count=counts.get(m.id, 0))
        for m in ministries
    ]


def _write_leaders(db: Session, ministry_id: str, names: List[str]) -> None:
    for position, name in enumerate(names):
        db.add(MinistryLeader(ministry_id=ministry_id, name=name, position=position))


def _commit(db: Session, fallback: str, *, flush_only: bool = False) -> None:
    try:
        if flush_only:
            db.flush()
        else:
            db.commit()
    except IntegrityError as e:
        db.rollback()
        if "name" in str(getattr(e, "orig", None) or e).lower():
            raise HTTPException(status_code=409, detail=NAME_TAKEN)
        raise db_failure(e, fallback)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Ministry write failed")
        raise db_failure(e, fallback)


# -----------------------------
# Ministries
# -----------------------------

@router.post("")
def create_ministry(payload: MinistryCreate, db: Session = Depends(get_db)) -> Dict[str, Any]:
    leaders = clean_leaders(payload.leader_names())
    if not payload.name or not leaders:
        raise HTTPException(status_code=400, detail="Name and at least one leader are required fields")

    if _name_taken(db, payload.name):
        raise HTTPException(status_code=409, detail=NAME_TAKEN)

    notes = compose_notes(
        leaders=leaders,
        requirements=payload.requirements,
        contact_email=payload.contact_email,
        contact_phone=payload.contact_phone,
    )

    ministry = Ministry(
        name=payload.name,
        description=payload.description,
        meeting_day=payload.meeting_day,
        meeting_time=payload.meeting_time,
        location=payload.location,
        capacity=payload.capacity,
        is_active=True if payload.is_active is None else payload.is_active,
        notes=notes,
    )
    db.add(ministry)
    # leader rows reference the ministry; no relationship() orders the inserts
    _commit(db, "Failed to register ministry. Please try again.", flush_only=True)
    _write_leaders(db, ministry.id, leaders)
    _commit(db, "Failed to register ministry. Please try again.")
    db.refresh(ministry)

    logger.info("Created ministry %s (%s)", ministry.name, ministry.id)
    return {
        "success": True,
        "message": "Ministry registered successfully!",
        "ministry": _serialize_ministry(ministry, leader_rows=leaders, member_count=0),
    }


@router.get("")
def list_ministries(db: Session = Depends(get_db)) -> Dict[str, Any]:
    ministries = db.exec(select(Ministry).order_by(Ministry.created_at.desc(), Ministry.name)).all()
    items = _serialize_many(db, ministries)
    return {"success": True, "ministries": items, "total": len(items)}


@router.get("/{ministry_id}")
def get_ministry(ministry_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    m = _get_ministry_or_404(db, ministry_id)
    return {"success": True, "ministry": _serialize_many(db, [m])[0]}


@router.put("/{ministry_id}")
def update_ministry(ministry_id: str, payload: MinistryUpdate, db: Session = Depends(get_db)) -> Dict[str, Any]:
    if not payload.name:
        raise HTTPException(status_code=400, detail="Name is required")

    m = _get_ministry_or_404(db, ministry_id)

    if _name_taken(db, payload.name, exclude_id=m.id):
        raise HTTPException(status_code=409, detail=NAME_TAKEN)

    m.name = payload.name
    m.description = payload.description
    m.meeting_day = payload.meeting_day
    m.meeting_time = payload.meeting_time
    m.location = payload.location
    m.capacity = payload.capacity
    if payload.is_active is not None:
        m.is_active = payload.is_active
    if "notes" in payload.model_fields_set:
        m.notes = payload.notes

    if payload.leaders is not None or payload.leader is not None:
        leaders = clean_leaders(payload.leader_names())
        if not leaders:
            raise HTTPException(status_code=400, detail="At least one leader is required")
        for row in db.exec(select(MinistryLeader).where(MinistryLeader.ministry_id == m.id)).all():
            db.delete(row)
        db.flush()
        _write_leaders(db, m.id, leaders)
        m.notes = replace_leader_lines(m.notes, leaders)

    m.updated_at = utcnow()
    db.add(m)
    _commit(db, "Failed to update ministry. Please try again.")
    db.refresh(m)

    return {
        "success": True,
        "message": "Ministry updated successfully!",
        "ministry": _serialize_many(db, [m])[0],
    }


@router.delete("/{ministry_id}")
def delete_ministry(ministry_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    m = _get_ministry_or_404(db, ministry_id)

    for mm in db.exec(select(MemberMinistry).where(MemberMinistry.ministry_id == m.id)).all():
        db.delete(mm)
    for row in db.exec(select(MinistryLeader).where(MinistryLeader.ministry_id == m.id)).all():
        db.delete(row)
    db.flush()
    db.delete(m)
    _commit(db, "Failed to delete ministry. Please try again.")

    logger.info("Deleted ministry %s", ministry_id)
    return {"success": True, "message": "Ministry deleted successfully!"}


# -----------------------------
# Ministry membership
# -----------------------------

def _active_membership(db: Session, ministry_id: str, member_id: str) -> Optional[MemberMinistry]:
    return db.exec(
        select(MemberMinistry).where(
            MemberMinistry.ministry_id == ministry_id,
            MemberMinistry.member_id == member_id,
            MemberMinistry.is_active == True,  # noqa: E712
        )
    ).first()


@router.get("/{ministry_id}/members")
def list_ministry_members(ministry_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    _get_ministry_or_404(db, ministry_id)

    rows = db.exec(
        select(MemberMinistry, Member)
        .join(Member, Member.id == MemberMinistry.member_id)
        .where(MemberMinistry.ministry_id == ministry_id, MemberMinistry.is_active == True)  # noqa: E712
        .order_by(MemberMinistry.joined_at)
    ).all()

    members = []
    for mm, member in rows:
        item = member_summary(member, "email", "phone")
        item["joinDate"] = iso(mm.joined_at)
        item["role"] = mm.role
        members.append(item)

    return {"success": True, "members": members, "total": len(members)}


@router.post("/{ministry_id}/members")
def add_ministry_member(
    ministry_id: str,
    payload: MinistryMemberAdd,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    if not payload.member_id:
        raise HTTPException(status_code=400, detail="Member ID is required")
    role = payload.role or "MEMBER"

    ministry = _get_ministry_or_404(db, ministry_id)
    member = _get_member_or_404(db, payload.member_id)

    if _active_membership(db, ministry.id, member.id):
        raise HTTPException(status_code=409, detail="Member is already in this ministry")

    mm = MemberMinistry(member_id=member.id, ministry_id=ministry.id, role=role.upper())
    db.add(mm)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with another add for the same pair
        db.rollback()
        raise HTTPException(status_code=409, detail="Member is already in this ministry")
    db.refresh(mm)

    return {
        "success": True,
        "message": "Member added to ministry successfully",
        "memberMinistry": {
            "id": mm.id,
            "memberId": mm.member_id,
            "ministryId": mm.ministry_id,
            "role": mm.role,
            "joinedAt": iso(mm.joined_at),
            "isActive": mm.is_active,
        },
    }


@router.get("/{ministry_id}/members/{member_id}")
def get_ministry_member(ministry_id: str, member_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    mm = _active_membership(db, ministry_id, member_id)
    if not mm:
        raise HTTPException(status_code=404, detail="Member not found in this ministry")

    member = db.get(Member, member_id)
    ministry = db.get(Ministry, ministry_id)
    return {
        "success": True,
        "memberMinistry": {
            "id": mm.id,
            "role": mm.role,
            "joinedAt": iso(mm.joined_at),
            "isActive": mm.is_active,
            "member": member_summary(member, "email", "phone"),
            "ministry": {"id": ministry.id, "name": ministry.name, "description": ministry.description},
        },
    }


@router.delete("/{ministry_id}/members/{member_id}")
def remove_ministry_member(ministry_id: str, member_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    ministry = _get_ministry_or_404(db, ministry_id)
    member = _get_member_or_404(db, member_id)

    mm = _active_membership(db, ministry.id, member.id)
    if not mm:
        raise HTTPException(status_code=400, detail="Member is not in this ministry")

    mm.is_active = False
    db.add(mm)
    _commit(db, "Failed to remove member from ministry. Please try again.")

    logger.info("Removed member %s from ministry %s", member.id, ministry.id)
    return {"success": True, "message": "Member removed from ministry successfully"}
