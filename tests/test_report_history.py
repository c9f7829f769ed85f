from datetime import datetime, timezone

import pytest

from church_admin.models.member import Member, MemberStatus
from church_admin.models.zone import SaleGroup, Zone
from church_admin.services.reporting import generate_report

NOW = datetime(2024, 6, 15, 12, tzinfo=timezone.utc)


def _at(month, day):
    return datetime(2024, month, day, 10, tzinfo=timezone.utc)


def _member(n, created_at, status=MemberStatus.ACTIVE, **extra):
    return Member(
        id=f"MKC{n:06d}",
        first_name=f"Member{n}",
        last_name="Test",
        status=status,
        created_at=created_at,
        **extra,
    )


@pytest.fixture()
def zone_history(session):
    zone = Zone(name="Central Zone", leader_name="John Smith")
    session.add(zone)
    session.commit()
    group = SaleGroup(name="Alpha Group", zone_id=zone.id)
    session.add(group)
    session.commit()

    session.add_all(
        [
            _member(1, _at(1, 5), sale_group_id=group.id, zone_id=zone.id),
            _member(2, _at(3, 10), sale_group_id=group.id, zone_id=zone.id),
            _member(3, _at(4, 20), sale_group_id=group.id, zone_id=zone.id),
            _member(4, _at(5, 20), sale_group_id=group.id, zone_id=zone.id),
            # attached to the zone without a sale group
            _member(5, _at(6, 1), zone_id=zone.id),
            _member(6, _at(5, 25), status=MemberStatus.INACTIVE, sale_group_id=group.id, zone_id=zone.id),
            _member(7, _at(6, 2)),
        ]
    )
    session.commit()
    return zone


def test_membership_growth_against_earlier_members(session):
    session.add_all(
        [
            _member(1, _at(3, 10)),
            _member(2, _at(4, 20)),
            _member(3, _at(6, 1)),
            _member(4, _at(2, 5), status=MemberStatus.INACTIVE),
        ]
    )
    session.commit()

    kind, data = generate_report(session, "membership", "1month", now=NOW)

    assert kind == "membership"
    assert data["totalMembers"] == 3
    assert data["newMembers"] == 1
    assert data["previousMembers"] == 2
    assert data["growthRate"] == 50.0
    assert data["activeRate"] == 75
    assert data["monthlyGrowth"] == [
        {"month": "May 2024", "members": 2, "newMembers": 0, "retention": 66.7},
        {"month": "Jun 2024", "members": 3, "newMembers": 1, "retention": 66.7},
    ]


def test_membership_retention_is_full_without_earlier_members(session):
    session.add(_member(1, _at(6, 1)))
    session.commit()

    _, data = generate_report(session, "membership", "1month", now=NOW)

    assert data["growthRate"] == 0
    assert [row["retention"] for row in data["monthlyGrowth"]] == [100, 100]
    assert data["monthlyGrowth"][-1]["members"] == 1


def test_zone_growth_against_members_before_window(session, zone_history):
    _, data = generate_report(session, "zones", "1month", now=NOW)

    assert data["totalZones"] == 1
    assert data["totalMembers"] == 5
    assert data["averageMembersPerZone"] == 5

    stats = data["zoneStats"][0]
    assert stats["name"] == "Central Zone"
    assert stats["members"] == 5
    # 3 members before May 15, 5 now
    assert stats["growth"] == 67


def test_zone_monthly_growth_uses_previous_window(session, zone_history):
    _, data = generate_report(session, "zones", "1month", now=NOW)

    # 2 joined May 15..Jun 15 against 1 in the month before
    assert data["monthlyGrowth"] == 100


def test_zone_monthly_growth_is_zero_without_baseline(session, zone_history):
    # only the January member exists by then, and nothing joined before it
    _, data = generate_report(session, "zones", "1month", now=datetime(2024, 1, 20, tzinfo=timezone.utc))

    assert data["monthlyGrowth"] == 0


def test_zone_membership_trends_are_cumulative(session, zone_history):
    _, data = generate_report(session, "zones", "1month", now=NOW)

    assert data["membershipTrends"] == [
        {"month": "Jan", "members": 1},
        {"month": "Feb", "members": 1},
        {"month": "Mar", "members": 2},
        {"month": "Apr", "members": 3},
        {"month": "May", "members": 4},
        {"month": "Jun", "members": 5},
    ]
