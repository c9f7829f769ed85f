import pytest
from fastapi import HTTPException

from church_admin.api.sale_groups import NAME_TAKEN, commit_sale_group
from church_admin.models.zone import SaleGroup, Zone


def _group(client, zone_id, name="Alpha Group", leader="Sarah Davis"):
    r = client.post(f"/api/zones/{zone_id}/sale-groups", json={"name": name, "leaderName": leader})
    assert r.status_code == 201, r.text
    return r.json()["saleGroup"]


def test_create_zone_validation(client, make_zone):
    r = client.post("/api/zones", json={"name": " "})
    assert r.status_code == 400
    assert r.json()["error"] == "Zone name is required"

    make_zone("Central Zone")
    r = client.post("/api/zones", json={"name": "central zone"})
    assert r.status_code == 409
    assert r.json()["error"] == "Zone with this name already exists"


def test_zone_payload_counts(client, make_zone, make_member):
    zone = make_zone()
    group = _group(client, zone["id"])
    make_member(saleGroupId=group["id"])
    make_member("Direct", "Member", zoneId=zone["id"])

    zones = client.get("/api/zones").json()["zones"]
    assert len(zones) == 1
    assert zones[0]["saleGroupCount"] == 1
    assert zones[0]["memberCount"] == 2
    assert zones[0]["saleGroups"][0]["memberCount"] == 1

    detail = client.get(f"/api/zones/{zone['id']}").json()["zone"]
    names = sorted(m["firstName"] for m in detail["members"])
    assert names == ["Abel", "Direct"]


def test_update_zone_with_leader(client, make_zone, make_member):
    zone = make_zone()
    leader = make_member("John", "Smith")

    r = client.put(f"/api/zones/{zone['id']}", json={"leaderId": leader["id"], "description": "Downtown"})
    assert r.status_code == 200
    body = r.json()["zone"]
    assert body["description"] == "Downtown"
    assert body["leader"]["id"] == leader["id"]

    # deleting the member clears the zone leader link
    client.delete("/api/members", params={"id": leader["id"]})
    assert client.get(f"/api/zones/{zone['id']}").json()["zone"]["leaderId"] is None


def test_zone_delete_guards(client, make_zone, make_member):
    zone = make_zone()
    group = _group(client, zone["id"])

    r = client.delete(f"/api/zones/{zone['id']}")
    assert r.status_code == 400
    assert r.json()["error"] == "Cannot delete zone with sale groups. Please delete sale groups first."

    assert client.delete(f"/api/sale-groups/{group['id']}").status_code == 200

    m = make_member("Direct", "Member", zoneId=zone["id"])
    r = client.delete(f"/api/zones/{zone['id']}")
    assert r.status_code == 400
    assert r.json()["error"] == "Cannot delete zone with members. Please reassign members first."

    client.delete("/api/members", params={"id": m["id"]})
    assert client.delete(f"/api/zones/{zone['id']}").status_code == 200
    assert client.get(f"/api/zones/{zone['id']}").status_code == 404


def test_sale_group_delete_guard_counts_inactive_members(client, make_zone, make_member):
    zone = make_zone()
    group = _group(client, zone["id"])
    m = make_member(saleGroupId=group["id"])
    client.put("/api/members", json={"id": m["id"], "status": "INACTIVE"})

    r = client.delete(f"/api/sale-groups/{group['id']}")
    assert r.status_code == 400
    assert r.json()["error"].startswith("Cannot delete sale group with members.")


def test_sale_group_routes(client, make_zone):
    zone = make_zone()
    other = make_zone("South Zone")

    r = client.post("/api/sale-groups", json={"name": "Beta Group", "leaderName": "Michael Brown"})
    assert r.status_code == 400
    assert r.json()["error"] == "Name, leader name, and zone ID are required"

    r = client.post(
        "/api/sale-groups", json={"name": "Beta Group", "leaderName": "Michael Brown", "zoneId": zone["id"]}
    )
    assert r.status_code == 201
    beta = r.json()["saleGroup"]
    assert beta["zone"]["name"] == "Central Zone"

    # same name is fine in another zone, not in the same one
    _group(client, other["id"], name="Beta Group")
    dup = client.post(f"/api/zones/{zone['id']}/sale-groups", json={"name": "beta group", "leaderName": "X"})
    assert dup.status_code == 409

    assert client.get("/api/sale-groups").json()["total"] == 2
    assert client.get("/api/sale-groups", params={"zoneId": zone["id"]}).json()["total"] == 1

    r = client.put(f"/api/sale-groups/{beta['id']}", json={"leaderName": "Lisa", "isActive": False})
    assert r.status_code == 200
    assert r.json()["saleGroup"]["leaderName"] == "Lisa"
    assert client.get(f"/api/zones/{zone['id']}/sale-groups").json()["total"] == 0

    assert client.get("/api/sale-groups/missing").status_code == 404


def test_zone_sale_group_requires_leader(client, make_zone):
    zone = make_zone()
    r = client.post(f"/api/zones/{zone['id']}/sale-groups", json={"name": "Alpha Group"})
    assert r.status_code == 400
    assert r.json()["error"] == "Name and leader name are required"

    r = client.post("/api/zones/missing/sale-groups", json={"name": "A", "leaderName": "B"})
    assert r.status_code == 404


def test_update_zone_with_unknown_leader_is_404(client, make_zone):
    zone = make_zone()

    r = client.put(f"/api/zones/{zone['id']}", json={"leaderId": "MKC999999"})
    assert r.status_code == 404
    assert r.json()["error"] == "Leader member not found"
    assert client.get(f"/api/zones/{zone['id']}").json()["zone"]["leaderId"] is None


def test_commit_sale_group_maps_only_name_clash_to_conflict(session):
    zone = Zone(name="Central Zone")
    session.add(zone)
    session.commit()

    session.add(SaleGroup(name="Alpha Group", zone_id=zone.id))
    commit_sale_group(session, "Failed to create sale group")

    session.add(SaleGroup(name="Alpha Group", zone_id=zone.id))
    with pytest.raises(HTTPException) as exc:
        commit_sale_group(session, "Failed to create sale group")
    assert exc.value.status_code == 409
    assert exc.value.detail == NAME_TAKEN


def test_commit_sale_group_unknown_zone_is_not_a_name_clash(session):
    session.add(SaleGroup(name="Alpha Group", zone_id="missing-zone"))
    with pytest.raises(HTTPException) as exc:
        commit_sale_group(session, "Failed to create sale group")
    assert exc.value.status_code == 400
    assert exc.value.detail != NAME_TAKEN
