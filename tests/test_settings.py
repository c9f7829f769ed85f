def test_bulk_upsert_is_idempotent(client):
    body = {
        "settings": {
            "churchName": {"value": "Grace Church", "category": "general", "isPublic": True},
            "maxMembers": 500,
        }
    }

    r = client.post("/api/settings", json=body)
    assert r.status_code == 200
    assert r.json()["updatedCount"] == 2

    client.post("/api/settings", json=body)

    listed = client.get("/api/settings").json()
    assert listed["total"] == 2
    assert listed["settings"]["churchName"]["value"] == "Grace Church"
    assert listed["settings"]["churchName"]["isPublic"] is True
    assert listed["settings"]["maxMembers"]["value"] == "500"
    assert listed["settings"]["maxMembers"]["category"] == "general"


def test_bulk_requires_settings_object(client):
    for body in ({}, {"settings": "nope"}, None):
        r = client.post("/api/settings", json=body)
        assert r.status_code == 400
        assert r.json()["error"] == "Settings object is required"


def test_falsy_values_store_as_empty_text(client):
    client.post("/api/settings", json={"settings": {"a": {"value": False}, "b": {"value": None}, "c": 0}})
    settings = client.get("/api/settings").json()["settings"]
    assert settings["a"]["value"] == ""
    assert settings["b"]["value"] == ""
    assert settings["c"]["value"] == "0"


def test_put_single_setting(client):
    r = client.put("/api/settings", json={"key": "timezone", "value": "Africa/Addis_Ababa", "category": "locale"})
    assert r.status_code == 200
    setting = r.json()["setting"]
    assert setting["key"] == "timezone"
    assert setting["category"] == "locale"

    r = client.put("/api/settings", json={"key": "timezone", "value": "UTC"})
    assert r.json()["setting"]["value"] == "UTC"
    assert r.json()["setting"]["category"] == "general"
    assert client.get("/api/settings").json()["total"] == 1

    r = client.put("/api/settings", json={"value": "x"})
    assert r.status_code == 400
    assert r.json()["error"] == "Setting key is required"


def test_delete_setting(client):
    client.put("/api/settings", json={"key": "timezone", "value": "UTC"})

    assert client.delete("/api/settings").status_code == 400
    assert client.delete("/api/settings", params={"key": "nope"}).status_code == 404
    assert client.delete("/api/settings", params={"key": "timezone"}).status_code == 200
    assert client.get("/api/settings").json()["total"] == 0
