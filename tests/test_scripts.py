from sqlmodel import select

from church_admin.models.member import Member
from church_admin.models.ministry import MemberMinistry, Ministry, MinistryLeader
from church_admin.models.zone import SaleGroup, Zone
from church_admin.scripts.check_ministries import ministry_lines
from church_admin.scripts.check_zones import zone_lines
from church_admin.scripts.seed import seed


def test_seed_is_idempotent(session):
    first = seed(session)
    session.commit()
    second = seed(session)
    session.commit()

    assert first == second == {"zones": 3, "sale_groups": 5, "ministries": 3}
    assert len(session.exec(select(Zone)).all()) == 3
    assert len(session.exec(select(SaleGroup)).all()) == 5
    assert len(session.exec(select(Ministry)).all()) == 3

    worship = session.exec(select(Ministry).where(Ministry.name == "Worship Ministry")).one()
    leaders = session.exec(select(MinistryLeader).where(MinistryLeader.ministry_id == worship.id)).all()
    assert [row.name for row in leaders] == ["Pastor James"]


def test_zone_lines(session):
    seed(session)
    session.commit()

    lines = zone_lines(session)
    assert lines[0].startswith("- Central Zone")
    assert any("Alpha Group" in line and "members=0" in line for line in lines)
    assert lines[-2:] == ["Total zones: 3", "Total sale groups: 5"]


def test_ministry_lines(session):
    seed(session)
    worship = session.exec(select(Ministry).where(Ministry.name == "Worship Ministry")).one()
    session.add(Member(id="MKC000001", first_name="Abel", last_name="Tesfaye"))
    session.commit()
    session.add(MemberMinistry(member_id="MKC000001", ministry_id=worship.id))
    session.add(Ministry(name="Outreach", notes="Leader: Sister Ruth"))
    session.commit()

    lines = ministry_lines(session)
    assert lines[0].startswith("- Children Ministry")
    assert any("Worship Ministry" in line and "leaders=Pastor James" in line and "members=1" in line for line in lines)
    assert any("Youth Ministry" in line and "members=0" in line for line in lines)
    assert any("Outreach" in line and "leaders=Sister Ruth" in line for line in lines)
    assert lines[-1] == "Total ministries: 4"
