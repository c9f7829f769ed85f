def _create(client, **body):
    payload = {"name": "Youth Ministry", "leaders": ["Ann", "Ben"]}
    payload.update(body)
    return client.post("/api/ministries", json=payload)


def test_create_and_fetch_round_trips_leaders(client):
    r = _create(
        client,
        requirements="Must attend orientation",
        contactEmail="youth@example.org",
        meetingDay="Friday",
    )
    assert r.status_code == 200, r.text
    created = r.json()["ministry"]
    assert created["leaders"] == ["Ann", "Ben"]

    got = client.get(f"/api/ministries/{created['id']}").json()["ministry"]
    assert got["leaders"] == ["Ann", "Ben"]
    assert got["requirements"] == "Must attend orientation"
    assert got["contactEmail"] == "youth@example.org"
    assert got["memberCount"] == 0
    assert "Leader: Ann" in got["notes"]


def test_single_leader_field_and_blank_leaders(client):
    r = _create(client, leaders=["", "  "], leader="Pastor Mike")
    assert r.status_code == 200
    assert r.json()["ministry"]["leaders"] == ["Pastor Mike"]


def test_create_requires_name_and_leader(client):
    r = _create(client, leaders=[" "])
    assert r.status_code == 400
    assert r.json()["error"] == "Name and at least one leader are required fields"

    assert _create(client, name="").status_code == 400


def test_duplicate_name_is_conflict(client):
    assert _create(client).status_code == 200
    r = _create(client, name="youth ministry")
    assert r.status_code == 409


def test_update_replaces_leaders(client):
    m = _create(client, requirements="Be kind").json()["ministry"]

    r = client.put(f"/api/ministries/{m['id']}", json={"name": "Youth & Young Adults", "leaders": ["Cara"]})
    assert r.status_code == 200
    got = r.json()["ministry"]
    assert got["name"] == "Youth & Young Adults"
    assert got["leaders"] == ["Cara"]
    assert got["requirements"] == "Be kind"
    assert "Leader: Ann" not in got["notes"]

    assert client.put(f"/api/ministries/{m['id']}", json={"name": ""}).status_code == 400
    assert client.put("/api/ministries/missing", json={"name": "X"}).status_code == 404


def test_list_counts_active_members(client, make_member):
    m = _create(client).json()["ministry"]
    member = make_member()
    client.post(f"/api/ministries/{m['id']}/members", json={"memberId": member["id"]})

    body = client.get("/api/ministries").json()
    assert body["total"] == 1
    assert body["ministries"][0]["memberCount"] == 1


def test_membership_lifecycle(client, make_member):
    m = _create(client).json()["ministry"]
    member = make_member()
    url = f"/api/ministries/{m['id']}/members"

    assert client.post(url, json={}).status_code == 400

    r = client.post(url, json={"memberId": member["id"], "role": "leader"})
    assert r.status_code == 200
    assert r.json()["memberMinistry"]["role"] == "LEADER"

    again = client.post(url, json={"memberId": member["id"]})
    assert again.status_code == 409
    assert again.json()["error"] == "Member is already in this ministry"

    listed = client.get(url).json()
    assert listed["total"] == 1
    assert listed["members"][0]["role"] == "LEADER"

    one = client.get(f"{url}/{member['id']}").json()["memberMinistry"]
    assert one["ministry"]["name"] == "Youth Ministry"

    assert client.delete(f"{url}/{member['id']}").status_code == 200
    assert client.get(f"{url}/{member['id']}").status_code == 404

    r = client.delete(f"{url}/{member['id']}")
    assert r.status_code == 400
    assert r.json()["error"] == "Member is not in this ministry"

    # soft removal allows joining again
    assert client.post(url, json={"memberId": member["id"]}).status_code == 200


def test_add_unknown_member_is_404(client):
    m = _create(client).json()["ministry"]
    r = client.post(f"/api/ministries/{m['id']}/members", json={"memberId": "MKC000404"})
    assert r.status_code == 404


def test_delete_ministry(client, make_member):
    m = _create(client).json()["ministry"]
    member = make_member()
    client.post(f"/api/ministries/{m['id']}/members", json={"memberId": member["id"]})

    assert client.delete(f"/api/ministries/{m['id']}").status_code == 200
    assert client.get(f"/api/ministries/{m['id']}").status_code == 404
    assert client.get(f"/api/members/{member['id']}").json()["member"]["ministryNames"] == "None"
