from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..database import get_db
from ..errors import error_body
from ..models.common import utcnow
from ..models.member import Member, MemberStatus
from ..models.ministry import Ministry
from ..services.dashboard_stats import default_stats
from ..services.reporting import count_members, count_rows, month_start

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])

GROWTH_MONTHS = 6
RECENT_DAYS = 30


def _growth_months(now: datetime) -> List[datetime]:
    first = month_start(now) - relativedelta(months=GROWTH_MONTHS - 1)
    return [first + relativedelta(months=i) for i in range(GROWTH_MONTHS)]


def growth_data(db: Session, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for start in _growth_months(now or utcnow()):
        nxt = start + relativedelta(months=1)
        active = Member.status == MemberStatus.ACTIVE
        out.append(
            {
                "date": start.date().isoformat(),
                "newMembers": count_members(db, active, Member.created_at >= start, Member.created_at < nxt),
                "totalMembers": count_members(db, active, Member.created_at < nxt),
            }
        )
    return out


def sample_growth_data(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> List[Dict[str, Any]]:
    """Plausible placeholder series for when the database is unreachable."""
    rng = rng or random.Random()
    base_new = 120
    total = 450
    out: List[Dict[str, Any]] = []
    for start in _growth_months(now or utcnow()):
        new = int(base_new + rng.uniform(-10, 10))
        total += new
        base_new += rng.randint(0, 4)
        out.append({"date": start.date().isoformat(), "newMembers": new, "totalMembers": total})
    return out


@router.get("/stats")
def dashboard_stats(db: Session = Depends(get_db)) -> Any:
    try:
        since = utcnow() - timedelta(days=RECENT_DAYS)
        active = Member.status == MemberStatus.ACTIVE
        stats = {
            "totalMembers": count_members(db, active),
            "totalMinistries": count_rows(db, Ministry, Ministry.is_active == True),  # noqa: E712
            "upcomingEvents": 0,
            "recentRegistrations": count_members(db, active, Member.created_at >= since),
        }
    except SQLAlchemyError:
        logger.exception("Error fetching dashboard stats")
        return JSONResponse(
            status_code=500,
            content=error_body("Failed to fetch dashboard statistics", stats=default_stats()),
        )
    return {"success": True, "stats": stats}


@router.get("/growth")
def dashboard_growth(db: Session = Depends(get_db)) -> Any:
    try:
        try:
            data = growth_data(db)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Database unavailable for growth data, returning sample data: %s", e)
            data = sample_growth_data()
    except Exception:
        logger.exception("Error fetching church growth data")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to fetch church growth data", "data": []},
        )
    return {"success": True, "data": data}
