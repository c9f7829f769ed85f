from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from ..models.common import as_utc, utcnow
from ..models.member import Member, MemberStatus
from ..models.ministry import MemberMinistry, Ministry, MinistryLeader
from ..models.zone import SaleGroup, Zone

logger = logging.getLogger(__name__)

REPORT_TYPES = ("membership", "ministry", "zones")
DEFAULT_REPORT_TYPE = "membership"

PERIODS: Dict[str, relativedelta] = {
    "1month": relativedelta(months=1),
    "3months": relativedelta(months=3),
    "6months": relativedelta(months=6),
    "1year": relativedelta(years=1),
}
DEFAULT_PERIOD = "1month"

# (label, lowest age, highest age or None, chart colour)
AGE_BUCKETS: Tuple[Tuple[str, int, Optional[int], str], ...] = (
    ("0-18", 0, 18, "#8884d8"),
    ("19-35", 19, 35, "#82ca9d"),
    ("36-50", 36, 50, "#ffc658"),
    ("51+", 51, None, "#ff7300"),
)


def empty_zones_report() -> Dict[str, Any]:
    return {
        "totalZones": 0,
        "totalMembers": 0,
        "averageMembersPerZone": 0,
        "monthlyGrowth": 0,
        "zoneStats": [],
        "membershipTrends": [],
        "zoneDistribution": [],
    }


# -----------------------------
# Window / calendar helpers
# -----------------------------

@dataclass(frozen=True)
class ReportWindow:
    period: str
    start: datetime
    end: datetime

    def month_starts(self) -> List[datetime]:
        return month_starts(self.start, self.end)


def normalize_report_type(report_type: Optional[str]) -> str:
    t = (report_type or "").strip().lower()
    return t if t in REPORT_TYPES else DEFAULT_REPORT_TYPE


def normalize_period(period: Optional[str]) -> str:
    p = (period or "").strip().lower()
    return p if p in PERIODS else DEFAULT_PERIOD


def compute_window(period: Optional[str], now: Optional[datetime] = None) -> ReportWindow:
    """
    [end - period, end], end = now (UTC). Unknown periods behave like 1month.
    relativedelta clamps month ends (Mar 31 - 1 month -> Feb 28/29).
    """
    p = normalize_period(period)
    end = as_utc(now) if now is not None else utcnow()
    return ReportWindow(period=p, start=end - PERIODS[p], end=end)


def month_start(dt: datetime) -> datetime:
    return dt.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def month_starts(start: datetime, end: datetime) -> List[datetime]:
    """First instant of every calendar month touched by [start, end]."""
    out: List[datetime] = []
    cur = month_start(start)
    last = month_start(end)
    while cur <= last:
        out.append(cur)
        cur = cur + relativedelta(months=1)
    return out


def age_on(born: date, today: date) -> int:
    """Whole years between born and today."""
    return relativedelta(today, born).years


def percent(part: int, whole: int) -> int:
    """Rounded percentage, halves rounded up; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


def ratio_pct(part: int, whole: int) -> float:
    """part / whole * 100 to one decimal; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return round(part / whole * 100, 1)


# -----------------------------
# Count helpers
# -----------------------------

def count_rows(db: Session, model: Any, *conditions: Any) -> int:
    q = select(func.count()).select_from(model)
    if conditions:
        q = q.where(*conditions)
    return int(db.exec(q).one() or 0)


def count_members(db: Session, *conditions: Any) -> int:
    return count_rows(db, Member, *conditions)


def zone_member_filter(zone_id: str) -> Any:
    """
    Members of a zone: in one of its sale groups, or attached to the zone
    directly without a sale group.
    """
    group_ids = select(SaleGroup.id).where(SaleGroup.zone_id == zone_id)
    return or_(
        Member.sale_group_id.in_(group_ids),
        and_(Member.sale_group_id.is_(None), Member.zone_id == zone_id),
    )


def zone_attached_filter() -> Any:
    return or_(Member.sale_group_id.is_not(None), Member.zone_id.is_not(None))


def _active() -> Any:
    return Member.status == MemberStatus.ACTIVE


# -----------------------------
# membership
# -----------------------------

def membership_report(db: Session, window: ReportWindow) -> Dict[str, Any]:
    total_members = count_members(db, _active())
    new_members = count_members(
        db, _active(), Member.created_at >= window.start, Member.created_at <= window.end
    )

    by_status: List[Tuple[str, int]] = [
        (status.value.title(), count_members(db, Member.status == status))
        for status in (MemberStatus.ACTIVE, MemberStatus.INACTIVE, MemberStatus.TRANSFERRED, MemberStatus.SUSPENDED)
    ]
    status_total = sum(n for _, n in by_status)
    active_count = by_status[0][1]

    birth_dates = db.exec(
        select(Member.date_of_birth).where(_active(), Member.date_of_birth.is_not(None))
    ).all()

    previous_members = total_members - new_members

    return {
        "totalMembers": total_members,
        "newMembers": new_members,
        "previousMembers": previous_members,
        "growthRate": ratio_pct(new_members, previous_members),
        "activeRate": percent(active_count, status_total),
        "ageDistribution": age_distribution(birth_dates, today=window.end.date()),
        "monthlyGrowth": membership_monthly_growth(db, window),
        "membershipByStatus": [
            {"status": label, "count": n, "percentage": percent(n, status_total)} for label, n in by_status
        ],
    }


def age_distribution(birth_dates: Sequence[Optional[date]], *, today: date) -> List[Dict[str, Any]]:
    counts = {label: 0 for label, _, _, _ in AGE_BUCKETS}
    for born in birth_dates:
        if born is None:
            continue
        age = age_on(born, today)
        for label, low, high, _ in AGE_BUCKETS:
            if age >= low and (high is None or age <= high):
                counts[label] += 1
                break
        else:
            # born in the future: put with the youngest
            counts[AGE_BUCKETS[0][0]] += 1

    total = sum(counts.values())
    return [
        {"name": label, "value": percent(counts[label], total), "color": color}
        for label, _, _, color in AGE_BUCKETS
    ]


def membership_monthly_growth(db: Session, window: ReportWindow) -> List[Dict[str, Any]]:
    months: List[Dict[str, Any]] = []
    for start in window.month_starts():
        nxt = start + relativedelta(months=1)

        members = count_members(db, _active(), Member.created_at < nxt)
        new_members = count_members(db, _active(), Member.created_at >= start, Member.created_at < nxt)

        earlier = count_members(db, Member.created_at < start)
        earlier_active = count_members(db, _active(), Member.created_at < start)
        retention = ratio_pct(earlier_active, earlier) if earlier else 100

        months.append(
            {
                "month": start.strftime("%b %Y"),
                "members": members,
                "newMembers": new_members,
                "retention": retention,
            }
        )
    return months


# -----------------------------
# ministry
# -----------------------------

def _is_leader_role(role: Optional[str]) -> bool:
    return bool(role) and "leader" in role.lower()


def ministry_report(db: Session, window: ReportWindow) -> Dict[str, Any]:
    """
    Per-ministry participation for active ministries.

    There is no activity log, so "activities" is an estimate: one per
    leader row plus one weekly meeting slot when a meeting day is set.
    """
    ministries = db.exec(select(Ministry).where(Ministry.is_active == True).order_by(Ministry.name)).all()  # noqa: E712

    participation: List[Dict[str, Any]] = []
    stats: List[Dict[str, Any]] = []
    leadership: List[Dict[str, Any]] = []

    total_participants = 0
    total_active = 0
    total_new = 0

    for m in ministries:
        rows = db.exec(
            select(MemberMinistry, Member.status)
            .join(Member, Member.id == MemberMinistry.member_id)
            .where(MemberMinistry.ministry_id == m.id, MemberMinistry.is_active == True)  # noqa: E712
        ).all()

        members = len(rows)
        active = sum(1 for _, status in rows if status == MemberStatus.ACTIVE)
        new = sum(
            1 for mm, _ in rows if window.start <= as_utc(mm.created_at) <= window.end
        )

        leader_rows = count_rows(db, MinistryLeader, MinistryLeader.ministry_id == m.id)
        leaders = sum(1 for mm, _ in rows if _is_leader_role(mm.role)) or leader_rows or 1
        activities = leader_rows + (1 if m.meeting_day else 0)

        total_participants += members
        total_active += active
        total_new += new

        participation.append(
            {"ministry": m.name, "members": members, "active": active, "percentage": percent(active, members)}
        )
        stats.append(
            {
                "name": m.name,
                "members": members,
                "leaders": leaders,
                "activities": activities,
                "growth": ratio_pct(new, members - new),
            }
        )
        leadership.append(
            {
                "ministry": m.name,
                "leaders": leaders,
                "members": members,
                "ratio": round(members / leaders, 1) if members else 0,
            }
        )

    trends: List[Dict[str, Any]] = []
    for start in window.month_starts():
        nxt = start + relativedelta(months=1)
        trends.append(
            {
                "month": start.strftime("%b"),
                "participation": count_rows(
                    db,
                    MemberMinistry,
                    MemberMinistry.is_active == True,  # noqa: E712
                    MemberMinistry.created_at >= start,
                    MemberMinistry.created_at < nxt,
                ),
            }
        )

    return {
        "totalMinistries": len(ministries),
        "activeMembers": total_active,
        "participationRate": percent(total_active, total_participants),
        "monthlyGrowth": ratio_pct(total_new, total_participants - total_new),
        "ministryStats": stats,
        "participationTrends": trends,
        "leadershipData": leadership,
        "ministryParticipation": participation,
    }


# -----------------------------
# zones
# -----------------------------

def _zones_report(db: Session, window: ReportWindow) -> Dict[str, Any]:
    zones = db.exec(select(Zone).where(Zone.is_active == True).order_by(Zone.name)).all()  # noqa: E712

    counts: List[Tuple[Zone, int]] = [
        (z, count_members(db, _active(), zone_member_filter(z.id))) for z in zones
    ]
    total_members = sum(n for _, n in counts)
    total_zones = len(zones)

    # Baseline: the same-length window right before the report window
    # (for 1month this is the previous month)
    previous_start = window.start - (window.end - window.start)
    current_period = count_members(
        db, _active(), zone_attached_filter(), Member.created_at >= window.start, Member.created_at <= window.end
    )
    previous_period = count_members(
        db, _active(), zone_attached_filter(), Member.created_at >= previous_start, Member.created_at < window.start
    )
    monthly_growth = (
        percent(current_period - previous_period, previous_period) if previous_period > 0 else 0
    )

    zone_stats: List[Dict[str, Any]] = []
    for z, current in counts:
        pre_window = count_members(db, _active(), zone_member_filter(z.id), Member.created_at < window.start)
        if pre_window > 0:
            growth = percent(current - pre_window, pre_window)
        else:
            growth = 100 if current > 0 else 0
        zone_stats.append(
            {
                "name": z.name,
                "members": current,
                "leaderName": z.leader_name,
                "growth": growth,
                "isActive": z.is_active,
            }
        )

    trends: List[Dict[str, Any]] = []
    this_month = month_start(window.end)
    for i in range(5, -1, -1):
        start = this_month - relativedelta(months=i)
        nxt = start + relativedelta(months=1)
        trends.append(
            {
                "month": start.strftime("%b"),
                "members": count_members(db, _active(), zone_attached_filter(), Member.created_at < nxt),
            }
        )

    return {
        "totalZones": total_zones,
        "totalMembers": total_members,
        "averageMembersPerZone": int(math.floor(total_members / total_zones + 0.5)) if total_zones else 0,
        "monthlyGrowth": monthly_growth,
        "zoneStats": zone_stats,
        "membershipTrends": trends,
        "zoneDistribution": [
            {"zone": z.name, "members": n, "percentage": percent(n, total_members)} for z, n in counts
        ],
    }


def zones_report(db: Session, window: ReportWindow) -> Dict[str, Any]:
    """
    Zone dashboards degrade to an empty report instead of failing the page.
    """
    try:
        return _zones_report(db, window)
    except SQLAlchemyError:
        logger.exception("Zone report failed; returning empty report")
        db.rollback()
        return empty_zones_report()


# -----------------------------
# Entry point
# -----------------------------

_BUILDERS = {
    "membership": membership_report,
    "ministry": ministry_report,
    "zones": zones_report,
}


def generate_report(
    db: Session,
    report_type: Optional[str],
    period: Optional[str],
    *,
    now: Optional[datetime] = None,
) -> Tuple[str, Dict[str, Any]]:
    """
    Returns (normalized_type, data). Unknown types fall back to membership.
    """
    t = normalize_report_type(report_type)
    window = compute_window(period, now=now)
    logger.debug("Generating %s report for %s (%s .. %s)", t, window.period, window.start, window.end)
    return t, _BUILDERS[t](db, window)


# Rows used for CSV export, keyed by report type
MAIN_TABLE = {
    "membership": "monthlyGrowth",
    "ministry": "ministryStats",
    "zones": "zoneStats",
}


def main_table(report_type: str, data: Any) -> List[Dict[str, Any]]:
    """
    The row list a report exports as CSV. A stored list is used as-is;
    a dict yields its type's main table (or [data] when that key is missing).
    """
    if isinstance(data, list):
        return [r for r in data if isinstance(r, dict)]
    if not isinstance(data, dict):
        return []
    key = MAIN_TABLE.get(normalize_report_type(report_type))
    rows = data.get(key) if key else None
    if isinstance(rows, list):
        return [r for r in rows if isinstance(r, dict)]
    return [data]


__all__ = [
    "REPORT_TYPES",
    "PERIODS",
    "ReportWindow",
    "compute_window",
    "month_starts",
    "age_on",
    "percent",
    "generate_report",
    "membership_report",
    "ministry_report",
    "zones_report",
    "main_table",
    "zone_member_filter",
    "count_members",
    "count_rows",
    "month_start",
]
