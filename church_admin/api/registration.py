from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..database import get_db
from ..errors import error_body
from ..models.common import as_utc, utcnow
from ..models.member import Member, MemberStatus, MembershipType
from ..services.reporting import count_members

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/registration", tags=["registration"])

RECENT_DAYS = 30
RECENT_LIMIT = 10

# No baptism / transfer tables yet: both are estimated from new members
BAPTISM_SHARE = 0.3
TRANSFER_SHARE = 0.1


def _empty_stats() -> dict:
    return {
        "newMembers": 0,
        "baptisms": 0,
        "transfersIn": 0,
        "pendingRequests": 0,
        "recentRegistrations": [],
    }


@router.get("/stats")
def registration_stats(db: Session = Depends(get_db)) -> Any:
    since = utcnow() - timedelta(days=RECENT_DAYS)
    active = Member.status == MemberStatus.ACTIVE
    recent = Member.created_at >= since

    try:
        new_members = count_members(db, active, recent)
        new_regular = count_members(db, active, recent, Member.membership_type == MembershipType.REGULAR)
        pending = count_members(db, Member.status == MemberStatus.INACTIVE)
        rows = db.exec(
            select(Member).where(recent).order_by(Member.created_at.desc(), Member.id.desc()).limit(RECENT_LIMIT)
        ).all()
    except SQLAlchemyError:
        logger.exception("Error fetching registration stats")
        return JSONResponse(
            status_code=500,
            content=error_body("Failed to fetch registration statistics", stats=_empty_stats()),
        )

    registrations = [
        {
            "id": f"REG{str(i + 1).zfill(3)}",
            "memberId": m.id,
            "name": f"{m.first_name} {m.last_name}",
            "type": "New Member" if m.membership_type == MembershipType.REGULAR else "Transfer In",
            "date": as_utc(m.created_at).date().isoformat(),
            "status": "Completed" if m.status == MemberStatus.ACTIVE else "Pending",
        }
        for i, m in enumerate(rows)
    ]

    return {
        "success": True,
        "stats": {
            "newMembers": new_members,
            "baptisms": int(new_regular * BAPTISM_SHARE),
            "transfersIn": int(new_members * TRANSFER_SHARE),
            "pendingRequests": pending,
            "recentRegistrations": registrations,
        },
    }
