def test_health_ok(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "db": True, "product_service": True}


def test_health_degraded_when_product_service_down(client, catalog):
    catalog.fail_with = ConnectionError("refused")
    r = client.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "degraded"
    assert body["product_service"] is False
    assert body["db"] is True
