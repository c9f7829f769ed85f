from __future__ import annotations

from typing import List

from sqlmodel import Session, select

from church_admin.database import init_db, session_scope
from church_admin.models.ministry import MemberMinistry, Ministry, MinistryLeader
from church_admin.services.ministry_notes import parse_notes
from church_admin.services.reporting import count_rows


def ministry_lines(session: Session) -> List[str]:
    """One line per ministry with its leaders and active member count."""
    lines: List[str] = []

    ministries = session.exec(select(Ministry).order_by(Ministry.name)).all()
    for m in ministries:
        leaders = session.exec(
            select(MinistryLeader.name)
            .where(MinistryLeader.ministry_id == m.id)
            .order_by(MinistryLeader.position)
        ).all()
        # Rows written before leaders had their own table only have the notes
        names = list(leaders) or parse_notes(m.notes).leaders
        members = count_rows(
            session,
            MemberMinistry,
            MemberMinistry.ministry_id == m.id,
            MemberMinistry.is_active == True,  # noqa: E712
        )
        lines.append(
            f"- {m.name} (id={m.id}, active={m.is_active}, "
            f"leaders={', '.join(names) or '-'}, members={members})"
        )

    lines.append("")
    lines.append(f"Total ministries: {len(ministries)}")
    return lines


def main() -> None:
    init_db()
    with session_scope() as session:
        for line in ministry_lines(session):
            print(line)


if __name__ == "__main__":
    main()
