from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from pydantic import ValidationError
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from ..config import settings
from ..database import get_db
from ..errors import db_failure
from ..models.member import Member, MemberStatus, MembershipType
from ..models.ministry import MemberMinistry, Ministry, MinistryLeader
from ..models.zone import SaleGroup, Zone
from ..services.member_ids import generate_member_id
from ..services.storage import StorageClient, StorageError, get_storage, store_profile_image
from .schemas import MemberCreate, MemberUpdate, is_valid_email
from .serializers import member_rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/members", tags=["members"])

MAX_ID_ATTEMPTS = 5
JSON_LIST_FIELDS = ("childrenAges", "childrenInfo", "uniqueSkills")

NAMES_REQUIRED = "First name and last name are required fields"
INVALID_EMAIL = "Please provide a valid email address"
EMAIL_TAKEN = "A member with this email address already exists"


# -----------------------------
# Request parsing
# -----------------------------

def _parse_json_list(key: str, value: Any) -> Optional[List[Any]]:
    """
    Form fields carry JSON text ("[3, 5]"). Unparsable or non-list values
    are dropped with a warning instead of failing the registration.
    """
    if value is None or isinstance(value, list):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        logger.warning("Failed to parse %s as JSON; ignoring", key)
        return None
    if not isinstance(parsed, list):
        logger.warning("%s is not a JSON list; ignoring", key)
        return None
    return parsed


async def _read_body(request: Request) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    """
    Registration accepts multipart/urlencoded forms (the web form) or JSON.
    Returns (fields, uploaded profile image or None).
    """
    ctype = (request.headers.get("content-type") or "").lower()
    upload: Optional[UploadFile] = None
    raw: Dict[str, Any] = {}

    if "multipart/form-data" in ctype or "application/x-www-form-urlencoded" in ctype:
        try:
            form = await request.form()
        except Exception as e:
            logger.warning("Could not parse registration form: %s", e)
            raise HTTPException(status_code=400, detail="Invalid form data")
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if key == "profileImage" and value.filename:
                    upload = value
                continue
            raw[key] = value
    else:
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        raw = dict(body)

    for key in JSON_LIST_FIELDS:
        if key in raw:
            raw[key] = _parse_json_list(key, raw[key])

    return raw, upload


def _validation_error(e: ValidationError) -> HTTPException:
    first = e.errors()[0] if e.errors() else {}
    loc = ".".join(str(p) for p in first.get("loc", ()))
    msg = first.get("msg", "Invalid value")
    return HTTPException(status_code=400, detail=f"Invalid {loc}: {msg}" if loc else msg)


# -----------------------------
# Helpers
# -----------------------------

def _email_taken(db: Session, email: str, *, exclude_id: Optional[str] = None) -> bool:
    q = select(Member.id).where(func.lower(Member.email) == email.lower())
    if exclude_id:
        q = q.where(Member.id != exclude_id)
    return db.exec(q).first() is not None


def _resolve_placement(
    db: Session, sale_group_id: Optional[str], zone_id: Optional[str]
) -> Tuple[Optional[str], Optional[str]]:
    """
    (sale_group_id, zone_id) with the zone following the sale group.
    """
    if sale_group_id:
        group = db.get(SaleGroup, sale_group_id)
        if not group:
            raise HTTPException(status_code=404, detail="Sale group not found")
        return group.id, group.zone_id
    if zone_id:
        if not db.get(Zone, zone_id):
            raise HTTPException(status_code=404, detail="Zone not found")
        return None, zone_id
    return None, None


def _existing_ids(db: Session) -> List[str]:
    prefix = settings.member_id_prefix
    return list(db.exec(select(Member.id).where(Member.id.like(f"{prefix}%"))).all())


def _is_id_collision(e: IntegrityError) -> bool:
    msg = str(getattr(e, "orig", None) or e)
    return "members.id" in msg or "members_pkey" in msg


def _is_email_collision(e: IntegrityError) -> bool:
    msg = str(getattr(e, "orig", None) or e).lower()
    return "email" in msg and ("unique" in msg or "duplicate" in msg)


def _insert_member(db: Session, member: Member) -> Member:
    """
    Allocate the next member id and insert. A concurrent insert that took the
    same id fails on the primary key; re-read and try again.
    """
    for attempt in range(1, MAX_ID_ATTEMPTS + 1):
        member.id = generate_member_id(
            _existing_ids(db),
            prefix=settings.member_id_prefix,
            width=settings.member_id_width,
        )
        db.add(member)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if _is_id_collision(e) and attempt < MAX_ID_ATTEMPTS:
                logger.warning("Member id %s taken (attempt %s); retrying", member.id, attempt)
                continue
            if _is_email_collision(e):
                raise HTTPException(status_code=409, detail=EMAIL_TAKEN)
            logger.exception("Member insert failed")
            raise db_failure(e, "Failed to register member. Please try again later.")
        db.refresh(member)
        return member

    raise HTTPException(status_code=500, detail="Could not allocate a member id. Please try again.")


def _join_named_ministry(db: Session, member: Member, ministry_name: str) -> None:
    """
    Best effort: a failure here never fails the registration.
    """
    try:
        ministry = db.exec(
            select(Ministry)
            .where(func.lower(Ministry.name).contains(ministry_name.lower()))
            .order_by(Ministry.name)
        ).first()
        if not ministry:
            logger.info("No ministry matches %r; skipping assignment", ministry_name)
            return
        db.add(MemberMinistry(member_id=member.id, ministry_id=ministry.id, role="MEMBER"))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Failed to assign ministry %r to %s", ministry_name, member.id, exc_info=True)


def _get_member_or_404(db: Session, member_id: str) -> Member:
    m = db.get(Member, member_id)
    if not m:
        raise HTTPException(status_code=404, detail="Member not found")
    return m


def _check_new_member(db: Session, payload: MemberCreate) -> Tuple[Optional[str], Optional[str]]:
    """Read-side checks done before the image upload. Returns the placement."""
    if payload.email and _email_taken(db, payload.email):
        raise HTTPException(status_code=409, detail=EMAIL_TAKEN)
    return _resolve_placement(db, payload.sale_group_id, payload.zone_id)


def _create_member(
    db: Session,
    payload: MemberCreate,
    *,
    profile_image: Optional[str],
    sale_group_id: Optional[str],
    zone_id: Optional[str],
) -> Dict[str, Any]:
    member = Member(
        id="",
        first_name=payload.first_name,
        middle_name=payload.middle_name,
        last_name=payload.last_name,
        email=payload.email,
        phone=payload.phone,
        subcity=payload.subcity,
        kebele=payload.kebele,
        special_place_name=payload.special_place_name,
        date_of_birth=payload.date_of_birth,
        gender=payload.gender,
        marital_status=payload.marital_status,
        number_of_children=payload.number_of_children,
        children_ages=payload.children_ages,
        children_info=payload.children_info,
        profession=payload.profession,
        unique_skills=payload.unique_skills,
        education_level=payload.education_level,
        emergency_contact_name=payload.emergency_contact_name,
        emergency_contact_phone=payload.emergency_contact_phone,
        profile_image=profile_image,
        sale_group_id=sale_group_id,
        zone_id=zone_id,
        notes=payload.notes,
        status=MemberStatus.ACTIVE,
        membership_type=MembershipType.REGULAR,
    )
    member = _insert_member(db, member)
    logger.info("Registered member %s", member.id)

    # Shaped before the ministry join commits and expires the instance
    summary = {
        "id": member.id,
        "firstName": member.first_name,
        "lastName": member.last_name,
        "email": member.email,
        "profileImage": member.profile_image,
    }

    if payload.ministry:
        _join_named_ministry(db, member, payload.ministry)
    return summary


# -----------------------------
# Routes
# -----------------------------

@router.post("")
async def register_member(
    request: Request,
    db: Session = Depends(get_db),
    storage: Optional[StorageClient] = Depends(get_storage),
) -> Dict[str, Any]:
    """
    Body parsing and the image upload are awaited here; every Session call
    goes through run_in_threadpool so the event loop never blocks on the DB.
    """
    raw, upload = await _read_body(request)

    first = str(raw.get("firstName") or "").strip()
    last = str(raw.get("lastName") or "").strip()
    if not first or not last:
        raise HTTPException(status_code=400, detail=NAMES_REQUIRED)

    email = str(raw.get("email") or "").strip()
    if email and not is_valid_email(email):
        raise HTTPException(status_code=400, detail=INVALID_EMAIL)

    try:
        payload = MemberCreate.model_validate(raw)
    except ValidationError as e:
        raise _validation_error(e)

    sale_group_id, zone_id = await run_in_threadpool(_check_new_member, db, payload)

    profile_image = payload.profile_image
    if upload is not None:
        data = await upload.read()
        try:
            profile_image = await store_profile_image(storage, data, upload.filename, upload.content_type)
        except StorageError as e:
            logger.exception("Profile image upload failed")
            raise HTTPException(status_code=400, detail=f"Image upload failed: {e}")

    summary = await run_in_threadpool(
        _create_member,
        db,
        payload,
        profile_image=profile_image,
        sale_group_id=sale_group_id,
        zone_id=zone_id,
    )

    return {
        "success": True,
        "message": "Member registered successfully!",
        "member": summary,
    }


@router.get("")
def list_members(
    *,
    db: Session = Depends(get_db),
    status: str = Query("ACTIVE", description="Member status, or 'all'"),
    search: Optional[str] = Query(None, description="Matches name, email and phone"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> Dict[str, Any]:
    q = select(Member)

    s = (status or "").strip().upper()
    if s and s != "ALL":
        try:
            q = q.where(Member.status == MemberStatus(s))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid status '{status}'")

    for term in (search or "").split():
        needle = f"%{term.lower()}%"
        q = q.where(
            or_(
                func.lower(Member.first_name).like(needle),
                func.lower(Member.last_name).like(needle),
                func.lower(Member.email).like(needle),
                func.lower(Member.phone).like(needle),
            )
        )

    total = db.exec(select(func.count()).select_from(q.subquery())).one()
    members = db.exec(
        q.order_by(Member.created_at.desc(), Member.id.desc()).offset(offset).limit(limit)
    ).all()

    return {
        "success": True,
        "members": member_rows(db, members),
        "total": int(total or 0),
        "limit": limit,
        "offset": offset,
    }


@router.get("/{member_id}")
def get_member(member_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    m = _get_member_or_404(db, member_id)
    return {"success": True, "member": member_rows(db, [m])[0]}


@router.put("")
def update_member(body: Any = Body(None), db: Session = Depends(get_db)) -> Dict[str, Any]:
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    for key in JSON_LIST_FIELDS:
        if key in body:
            body[key] = _parse_json_list(key, body[key])

    email = body.get("email")
    if isinstance(email, str) and email.strip() and not is_valid_email(email.strip()):
        raise HTTPException(status_code=400, detail=INVALID_EMAIL)

    try:
        payload = MemberUpdate.model_validate(body)
    except ValidationError as e:
        raise _validation_error(e)

    if not payload.id:
        raise HTTPException(status_code=400, detail="Member ID is required")

    m = _get_member_or_404(db, payload.id)
    changes = payload.model_dump(exclude_unset=True, exclude={"id"})

    for key in ("first_name", "last_name"):
        if key in changes and not changes[key]:
            raise HTTPException(status_code=400, detail=NAMES_REQUIRED)

    if changes.get("email") and _email_taken(db, changes["email"], exclude_id=m.id):
        raise HTTPException(status_code=409, detail=EMAIL_TAKEN)

    if "sale_group_id" in changes or "zone_id" in changes:
        sale_group_id = changes.pop("sale_group_id", m.sale_group_id)
        zone_id = changes.pop("zone_id", m.zone_id)
        m.sale_group_id, m.zone_id = _resolve_placement(db, sale_group_id, zone_id)

    for key, value in changes.items():
        if key in ("status", "membership_type") and value is None:
            continue
        setattr(m, key, value)

    m.touch()
    db.add(m)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_email_collision(e):
            raise HTTPException(status_code=409, detail=EMAIL_TAKEN)
        raise db_failure(e, "Failed to update member. Please try again.")
    db.refresh(m)

    return {
        "success": True,
        "message": "Member updated successfully!",
        "member": member_rows(db, [m])[0],
    }


@router.delete("")
def delete_member(
    *,
    db: Session = Depends(get_db),
    id: Optional[str] = Query(None),
) -> Dict[str, Any]:
    if not id:
        raise HTTPException(status_code=400, detail="Member ID is required")

    m = _get_member_or_404(db, id)

    try:
        for mm in db.exec(select(MemberMinistry).where(MemberMinistry.member_id == m.id)).all():
            db.delete(mm)
        for leader in db.exec(select(MinistryLeader).where(MinistryLeader.member_id == m.id)).all():
            leader.member_id = None
            db.add(leader)
        for zone in db.exec(select(Zone).where(Zone.leader_id == m.id)).all():
            zone.leader_id = None
            db.add(zone)
        db.flush()
        db.delete(m)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Member delete failed for %s", id)
        raise db_failure(e, "Failed to delete member. Please try again.")

    logger.info("Deleted member %s", id)
    return {"success": True, "message": "Member deleted successfully!"}
