from backend.qrlinks import models, repository


def test_create_returns_record_redirect_url_and_image(client):
    payload = {
        "name": "Spring flyer",
        "destination_url": "https://shop.example/sale?ref=qr",
        "utm_source": "flyer",
        "utm_campaign": "spring",
    }
    r = client.post("/api/qrcodes", json=payload)
    assert r.status_code == 201
    data = r.json()
    assert data["name"] == "Spring flyer"
    assert data["destination_url"] == "https://shop.example/sale?ref=qr"
    assert data["utm_source"] == "flyer"
    assert data["utm_medium"] is None
    assert data["archived_at"] is None
    assert data["redirect_url"] == f"http://testserver/r/{data['slug']}"
    assert data["qr_code_image"].startswith("data:image/png;base64,")


def test_create_rejects_non_http_destination(client, app):
    for bad in ("javascript:alert(1)", "ftp://files.example/x", "not a url"):
        r = client.post("/api/qrcodes", json={"destination_url": bad})
        assert r.status_code == 422
        assert "Only http:// and https://" in r.text

    db = app.state.session_factory()
    try:
        assert db.query(models.QRCode).count() == 0
    finally:
        db.close()


def test_slug_collision_returns_conflict(client, monkeypatch):
    monkeypatch.setattr(repository, "generate_slug", lambda: "same0001")
    assert client.post("/api/qrcodes", json={"destination_url": "https://a.example"}).status_code == 201
    r = client.post("/api/qrcodes", json={"destination_url": "https://b.example"})
    assert r.status_code == 409


def test_list_includes_scan_totals_newest_first(client, create_qr):
    first = create_qr(destination_url="https://first.example")
    second = create_qr(destination_url="https://second.example")
    client.get(f"/r/{first['slug']}", follow_redirects=False)
    client.get(f"/r/{first['slug']}", follow_redirects=False)

    r = client.get("/api/qrcodes")
    assert r.status_code == 200
    items = r.json()
    assert [i["id"] for i in items] == [second["id"], first["id"]]
    totals = {i["id"]: i["total_scans"] for i in items}
    assert totals == {first["id"]: 2, second["id"]: 0}
    assert items[0]["redirect_url"].endswith(f"/r/{second['slug']}")


def test_get_single_and_not_found(client, create_qr):
    created = create_qr()
    r = client.get(f"/api/qrcodes/{created['id']}")
    assert r.status_code == 200
    assert r.json()["slug"] == created["slug"]
    assert r.json()["qr_code_image"].startswith("data:image/png;base64,")

    assert client.get("/api/qrcodes/9999").status_code == 404


def test_partial_update(client, create_qr):
    created = create_qr(name="Old", utm_source="print")
    r = client.put(f"/api/qrcodes/{created['id']}", json={"destination_url": "https://new.example/x"})
    assert r.status_code == 200
    data = r.json()
    assert data["destination_url"] == "https://new.example/x"
    assert data["name"] == "Old"
    assert data["utm_source"] == "print"


def test_update_validation(client, create_qr):
    created = create_qr()
    qid = created["id"]
    assert client.put(f"/api/qrcodes/{qid}", json={}).status_code == 400
    assert client.put(f"/api/qrcodes/{qid}", json={"destination_url": "javascript:alert(1)"}).status_code == 422
    assert client.put(f"/api/qrcodes/{qid}", json={"destination_url": None}).status_code == 422
    assert client.put("/api/qrcodes/9999", json={"name": "x"}).status_code == 404
    # nothing changed
    assert client.get(f"/api/qrcodes/{qid}").json()["destination_url"] == "https://example.com/landing"


def test_delete_archives(client, create_qr):
    created = create_qr()
    qid = created["id"]

    r = client.delete(f"/api/qrcodes/{qid}")
    assert r.status_code == 204
    assert r.content == b""

    assert client.get(f"/api/qrcodes/{qid}").status_code == 404
    assert client.get("/api/qrcodes").json() == []
    assert client.delete(f"/api/qrcodes/{qid}").status_code == 404
    assert client.get(f"/api/qrcodes/{qid}/stats").status_code == 404


def test_stats_endpoint(client, create_qr):
    created = create_qr()
    slug = created["slug"]
    client.get(f"/r/{slug}", headers={"x-forwarded-for": "203.0.113.1"}, follow_redirects=False)
    client.get(f"/r/{slug}", headers={"x-forwarded-for": "203.0.113.1"}, follow_redirects=False)
    client.get(f"/r/{slug}", headers={"x-forwarded-for": "203.0.113.2"}, follow_redirects=False)

    r = client.get(f"/api/qrcodes/{created['id']}/stats")
    assert r.status_code == 200
    data = r.json()
    assert data["total_scans"] == 3
    assert data["unique_scans"] == 2
    assert len(data["daily_series"]) == 1
    assert data["daily_series"][0]["scans"] == 3
    assert data["top_countries"] == []
    assert sum(data["device_breakdown"].values()) == 3


def test_stats_date_range_params(client, create_qr):
    created = create_qr()
    client.get(f"/r/{created['slug']}", follow_redirects=False)

    r = client.get(f"/api/qrcodes/{created['id']}/stats", params={"startDate": "2000-01-01", "endDate": "2000-01-31"})
    assert r.status_code == 200
    assert r.json()["total_scans"] == 0
    assert r.json()["daily_series"] == []

    r = client.get(f"/api/qrcodes/{created['id']}/stats", params={"startDate": "yesterday", "endDate": "2000-01-31"})
    assert r.status_code == 422

    assert client.get("/api/qrcodes/9999/stats").status_code == 404


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "database": "ok"}
