from presence import is_online


def online(registry, device_id):
    record = registry.get(device_id)
    return is_online(registry.clock(), record["last_seen"], registry.window)


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.text == "ok"


def test_pull_delivers_command_once(client, admin):
    r = client.post("/api/command", json={"deviceId": "PC1", "command": "notepad.exe"}, headers=admin)
    assert r.status_code == 200

    first = client.get("/api/pull", params={"deviceId": "PC1"})
    assert first.status_code == 200
    assert first.json() == {"command": "notepad.exe", "kind": "plain"}

    second = client.get("/api/pull", params={"deviceId": "PC1"})
    assert second.json() == {"command": None, "kind": None}


def test_pull_requires_device_id(client):
    r = client.get("/api/pull")
    assert r.status_code == 400
    assert r.json() == {"error": "validation_error", "detail": "deviceId required"}

    r = client.get("/api/pull", params={"deviceId": "   "})
    assert r.status_code == 400


def test_pull_marks_device_seen(client, registry):
    client.get("/api/pull", params={"deviceId": "PC1"}, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

    record = registry.get("PC1")
    assert record["ip"] == "203.0.113.7"
    assert online(registry, "PC1")


def test_pull_with_empty_queue_still_counts_as_presence(client, registry, clock):
    client.get("/api/pull", params={"deviceId": "PC1"})
    clock.advance(25)
    client.get("/api/pull", params={"deviceId": "PC1"})
    clock.advance(25)

    assert online(registry, "PC1")


def test_heartbeat_records_metadata(client, registry):
    r = client.post("/api/heartbeat", json={
        "deviceId": "PC1", "hostname": "DESKTOP-01", "username": "alice", "os": "Windows 11",
    })
    assert r.status_code == 200
    assert r.json() == {"ok": True}

    client.post("/api/heartbeat", json={"deviceId": "PC1"})

    record = registry.get("PC1")
    assert record["hostname"] == "DESKTOP-01"
    assert record["username"] == "alice"
    assert record["os"] == "Windows 11"
    assert record["ip"] == "testclient"


def test_heartbeat_trims_device_id(client, registry):
    client.post("/api/heartbeat", json={"deviceId": "  PC1  "})
    assert registry.get("PC1") is not None


def test_heartbeat_requires_device_id(client):
    r = client.post("/api/heartbeat", json={"hostname": "x"})
    assert r.status_code == 400
    assert r.json()["detail"] == "deviceId required"


def test_heartbeat_rejects_non_string_fields(client):
    r = client.post("/api/heartbeat", json={"deviceId": ["PC1"]})
    assert r.status_code == 400
    assert r.json()["error"] == "validation_error"
