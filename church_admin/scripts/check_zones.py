from __future__ import annotations

from typing import List

from sqlmodel import Session, select

from church_admin.database import init_db, session_scope
from church_admin.models.member import Member, MemberStatus
from church_admin.models.zone import SaleGroup, Zone
from church_admin.services.reporting import count_members, zone_member_filter


def zone_lines(session: Session) -> List[str]:
    """One line per zone, then one indented line per sale group."""
    lines: List[str] = []
    active = Member.status == MemberStatus.ACTIVE

    zones = session.exec(select(Zone).order_by(Zone.name)).all()
    for z in zones:
        members = count_members(session, active, zone_member_filter(z.id))
        lines.append(f"- {z.name} (id={z.id}, active={z.is_active}, leader={z.leader_name or '-'}, members={members})")

        groups = session.exec(select(SaleGroup).where(SaleGroup.zone_id == z.id).order_by(SaleGroup.name)).all()
        for g in groups:
            n = count_members(session, active, Member.sale_group_id == g.id)
            lines.append(f"    - {g.name} (id={g.id}, leader={g.leader_name or '-'}, active={g.is_active}, members={n})")

    total_groups = len(session.exec(select(SaleGroup.id)).all())
    lines.append("")
    lines.append(f"Total zones: {len(zones)}")
    lines.append(f"Total sale groups: {total_groups}")
    return lines


def main() -> None:
    init_db()
    with session_scope() as session:
        for line in zone_lines(session):
            print(line)


if __name__ == "__main__":
    main()
