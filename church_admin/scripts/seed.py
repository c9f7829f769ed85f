from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from church_admin.database import init_db, session_scope
from church_admin.models.ministry import Ministry, MinistryLeader
from church_admin.models.zone import SaleGroup, Zone
from church_admin.services.ministry_notes import parse_notes


SAMPLE_ZONES: List[Dict[str, Any]] = [
    {
        "name": "Central Zone",
        "description": "Central area of the city",
        "leader_name": "John Smith",
        "notes": "Main zone covering downtown area",
        "sale_groups": [
            {"name": "Alpha Group", "leader_name": "Sarah Davis", "notes": "Young professionals group"},
            {"name": "Beta Group", "leader_name": "Michael Brown", "notes": "Family-oriented group"},
        ],
    },
    {
        "name": "North Zone",
        "description": "Northern suburbs",
        "leader_name": "Mary Johnson",
        "notes": "Covers northern residential areas",
        "sale_groups": [
            {"name": "Gamma Group", "leader_name": "Lisa Anderson", "notes": "Community outreach focused"},
            {"name": "Delta Group", "leader_name": "Robert Taylor", "notes": "Youth ministry group"},
        ],
    },
    {
        "name": "South Zone",
        "description": "Southern districts",
        "leader_name": "David Wilson",
        "notes": "Includes industrial and residential areas",
        "sale_groups": [
            {"name": "Epsilon Group", "leader_name": "Jennifer White", "notes": "Senior members group"},
        ],
    },
]

SAMPLE_MINISTRIES: List[Dict[str, Any]] = [
    {
        "name": "Worship Ministry",
        "description": "Leading worship services and music",
        "meeting_day": "Sunday",
        "meeting_time": "09:00",
        "location": "Main Sanctuary",
        "capacity": 50,
        "notes": "Leader: Pastor James\nAssistant: Maria Garcia",
    },
    {
        "name": "Youth Ministry",
        "description": "Ministry for teenagers and young adults",
        "meeting_day": "Friday",
        "meeting_time": "19:00",
        "location": "Youth Hall",
        "capacity": 100,
        "notes": "Leader: Pastor Mike\nAssistant: Sarah Johnson",
    },
    {
        "name": "Children Ministry",
        "description": "Sunday school and children programs",
        "meeting_day": "Sunday",
        "meeting_time": "10:30",
        "location": "Children Hall",
        "capacity": 80,
        "notes": "Leader: Teacher Anna\nAssistant: Teacher Beth",
    },
]


def upsert_zone(session: Session, row: Dict[str, Any]) -> Zone:
    """
    Create by name; an existing zone keeps whatever an admin edited.
    """
    existing: Optional[Zone] = session.exec(select(Zone).where(Zone.name == row["name"])).first()
    if existing:
        return existing

    zone = Zone(
        name=row["name"],
        description=row.get("description"),
        leader_name=row.get("leader_name"),
        notes=row.get("notes"),
        is_active=True,
    )
    session.add(zone)
    session.flush()
    return zone


def upsert_sale_group(session: Session, zone: Zone, row: Dict[str, Any]) -> SaleGroup:
    stmt = select(SaleGroup).where((SaleGroup.zone_id == zone.id) & (SaleGroup.name == row["name"]))
    existing: Optional[SaleGroup] = session.exec(stmt).first()
    if existing:
        return existing

    group = SaleGroup(
        name=row["name"],
        leader_name=row.get("leader_name"),
        zone_id=zone.id,
        notes=row.get("notes"),
        is_active=True,
    )
    session.add(group)
    return group


def upsert_ministry(session: Session, row: Dict[str, Any]) -> Ministry:
    existing: Optional[Ministry] = session.exec(select(Ministry).where(Ministry.name == row["name"])).first()
    if existing:
        return existing

    ministry = Ministry(
        name=row["name"],
        description=row.get("description"),
        meeting_day=row.get("meeting_day"),
        meeting_time=row.get("meeting_time"),
        location=row.get("location"),
        capacity=row.get("capacity"),
        notes=row.get("notes"),
        is_active=True,
    )
    session.add(ministry)
    session.flush()
    for position, name in enumerate(parse_notes(ministry.notes).leaders):
        session.add(MinistryLeader(ministry_id=ministry.id, name=name, position=position))
    return ministry


def seed(session: Session) -> Dict[str, int]:
    zones = []
    groups = []
    for row in SAMPLE_ZONES:
        zone = upsert_zone(session, row)
        zones.append(zone)
        for g in row.get("sale_groups", []):
            groups.append(upsert_sale_group(session, zone, g))

    ministries = [upsert_ministry(session, row) for row in SAMPLE_MINISTRIES]
    session.flush()

    return {"zones": len(zones), "sale_groups": len(groups), "ministries": len(ministries)}


def main() -> None:
    # Ensure tables exist (local dev)
    init_db()

    with session_scope() as session:
        counts = seed(session)
        total_zones = session.exec(select(Zone)).all()

    print(
        f"Seeded/updated zones: {counts['zones']}, sale groups: {counts['sale_groups']}, "
        f"ministries: {counts['ministries']} (zones in database: {len(total_zones)})"
    )


if __name__ == "__main__":
    main()
