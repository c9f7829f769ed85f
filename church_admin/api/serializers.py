from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlmodel import Session, select

from ..models.common import as_utc
from ..models.member import Member
from ..models.ministry import MemberMinistry, Ministry
from ..models.zone import SaleGroup, Zone


def iso(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _enum_value(v: Any) -> Any:
    return getattr(v, "value", v)


def serialize_member(m: Member) -> Dict[str, Any]:
    return {
        "id": m.id,
        "firstName": m.first_name,
        "middleName": m.middle_name,
        "lastName": m.last_name,
        "email": m.email,
        "phone": m.phone,
        "subcity": m.subcity,
        "kebele": m.kebele,
        "specialPlaceName": m.special_place_name,
        "dateOfBirth": iso(m.date_of_birth),
        "gender": m.gender,
        "maritalStatus": m.marital_status,
        "numberOfChildren": m.number_of_children,
        "childrenAges": m.children_ages,
        "childrenInfo": m.children_info,
        "profession": m.profession,
        "uniqueSkills": m.unique_skills,
        "educationLevel": m.education_level,
        "emergencyContactName": m.emergency_contact_name,
        "emergencyContactPhone": m.emergency_contact_phone,
        "profileImage": m.profile_image,
        "saleGroupId": m.sale_group_id,
        "zoneId": m.zone_id,
        "notes": m.notes,
        "status": _enum_value(m.status),
        "membershipType": _enum_value(m.membership_type),
        "membershipDate": iso(m.membership_date),
        "createdAt": iso(m.created_at),
        "updatedAt": iso(m.updated_at),
    }


def member_summary(m: Member, *extra: str) -> Dict[str, Any]:
    """
    Short member card used inside zone / sale group / ministry payloads.
    extra names additional serialized keys (e.g. "email", "phone").
    """
    full = serialize_member(m)
    out = {
        "id": m.id,
        "firstName": m.first_name,
        "lastName": m.last_name,
        "status": full["status"],
        "profileImage": m.profile_image,
    }
    for key in extra:
        out[key] = full.get(key)
    return out


def serialize_zone(z: Zone) -> Dict[str, Any]:
    return {
        "id": z.id,
        "name": z.name,
        "description": z.description,
        "leaderName": z.leader_name,
        "leaderId": z.leader_id,
        "notes": z.notes,
        "isActive": bool(z.is_active),
        "createdAt": iso(z.created_at),
        "updatedAt": iso(z.updated_at),
    }


def serialize_sale_group(g: SaleGroup) -> Dict[str, Any]:
    return {
        "id": g.id,
        "name": g.name,
        "leaderName": g.leader_name,
        "zoneId": g.zone_id,
        "notes": g.notes,
        "isActive": bool(g.is_active),
        "createdAt": iso(g.created_at),
        "updatedAt": iso(g.updated_at),
    }


# -----------------------------
# Member listings (names joined in)
# -----------------------------

def _ministry_names_by_member(db: Session, member_ids: List[str]) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {mid: [] for mid in member_ids}
    if not member_ids:
        return out
    rows = db.exec(
        select(MemberMinistry.member_id, Ministry.name)
        .join(Ministry, Ministry.id == MemberMinistry.ministry_id)
        .where(MemberMinistry.member_id.in_(member_ids), MemberMinistry.is_active == True)  # noqa: E712
        .order_by(MemberMinistry.created_at)
    ).all()
    for member_id, name in rows:
        out.setdefault(member_id, []).append(name)
    return out


def member_rows(db: Session, members: Iterable[Member]) -> List[Dict[str, Any]]:
    """
    Serialize members with ministryNames / saleGroup* / zone* joined in.

    zoneName prefers the sale group's zone and falls back to the member's own zone.
    """
    members = list(members)
    ids = [m.id for m in members]
    names = _ministry_names_by_member(db, ids)

    group_ids = {m.sale_group_id for m in members if m.sale_group_id}
    groups: Dict[str, SaleGroup] = {}
    if group_ids:
        groups = {g.id: g for g in db.exec(select(SaleGroup).where(SaleGroup.id.in_(group_ids))).all()}

    zone_ids = {m.zone_id for m in members if m.zone_id} | {g.zone_id for g in groups.values()}
    zones: Dict[str, Zone] = {}
    if zone_ids:
        zones = {z.id: z for z in db.exec(select(Zone).where(Zone.id.in_(zone_ids))).all()}

    out: List[Dict[str, Any]] = []
    for m in members:
        row = serialize_member(m)
        ministry_names = names.get(m.id) or []
        row["ministryNames"] = ", ".join(ministry_names) if ministry_names else "None"

        group = groups.get(m.sale_group_id) if m.sale_group_id else None
        zone = zones.get(group.zone_id) if group else None
        if zone is None and m.zone_id:
            zone = zones.get(m.zone_id)

        row["saleGroupName"] = group.name if group else None
        row["saleGroupLeaderName"] = group.leader_name if group else None
        row["zoneName"] = zone.name if zone else None
        row["zoneLeaderName"] = zone.leader_name if zone else None
        out.append(row)
    return out
