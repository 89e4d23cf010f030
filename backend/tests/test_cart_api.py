from cart_service.exceptions import TransportError

USER = {"X-User-Id": "user-1"}
OTHER = {"X-User-Id": "user-2"}


def _create(client, headers=None, **body):
    r = client.post("/api/carts", json=body or None, headers=headers or {})
    assert r.status_code == 201, r.text
    return r.json()


def _add(client, cart_id, product_id="p1", price=10.0, quantity=1, headers=None):
    return client.post(
        f"/api/carts/{cart_id}/items",
        json={"productId": product_id, "title": f"Product {product_id}", "price": price, "quantity": quantity},
        headers=headers or {},
    )


def test_create_guest_cart(client):
    cart = _create(client)
    assert cart["userId"] is None
    assert cart["status"] == "active"
    assert cart["items"] == []
    assert cart["totalAmount"] == "0.00"


def test_create_user_cart_with_metadata(client):
    cart = _create(client, headers=USER, metadata={"channel": "app"})
    assert cart["userId"] == "user-1"
    assert cart["metadata"] == {"channel": "app"}


def test_add_item_and_coupon_flow(client):
    cart = _create(client, headers=USER)

    r = _add(client, cart["id"], quantity=2, headers=USER)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["subtotal"] == "20.00"
    assert body["items"][0]["productId"] == "p1"

    r = client.post(f"/api/carts/{cart['id']}/coupon", json={"code": "SAVE10"}, headers=USER)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["coupon"]["discountType"] == "percentage"
    assert body["discountAmount"] == "2.00"
    assert body["taxAmount"] == "3.24"
    assert body["totalAmount"] == "21.24"

    r = client.delete(f"/api/carts/{cart['id']}/coupon", headers=USER)
    assert r.json()["totalAmount"] == "23.60"


def test_update_remove_and_clear(client):
    cart = _create(client)
    item_id = _add(client, cart["id"]).json()["items"][0]["id"]

    r = client.put(f"/api/carts/{cart['id']}/items/{item_id}", json={"quantity": 3})
    assert r.status_code == 200
    assert r.json()["items"][0]["quantity"] == 3

    r = client.delete(f"/api/carts/{cart['id']}/items/missing")
    assert r.status_code == 404
    assert r.json()["code"] == "ItemNotFound"

    r = client.delete(f"/api/carts/{cart['id']}/items/{item_id}")
    assert r.status_code == 200
    assert r.json()["items"] == []

    _add(client, cart["id"], "p2")
    r = client.delete(f"/api/carts/{cart['id']}/items")
    assert r.status_code == 200
    assert r.json()["subtotal"] == "0.00"


def test_summary(client):
    cart = _create(client)
    _add(client, cart["id"], "p1", quantity=2)
    _add(client, cart["id"], "p2", quantity=1)
    r = client.get(f"/api/carts/{cart['id']}/summary")
    assert r.status_code == 200
    assert r.json()["itemCount"] == 3


def test_error_mapping(client, catalog):
    r = client.get("/api/carts/does-not-exist")
    assert r.status_code == 404
    assert r.json()["code"] == "CartNotFound"

    cart = _create(client)
    r = _add(client, cart["id"], quantity=0)
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidQuantity"

    r = _add(client, cart["id"], "ghost")
    assert r.status_code == 400
    assert r.json()["code"] == "ProductUnavailable"

    r = client.post(f"/api/carts/{cart['id']}/coupon", json={"code": "SAVE10"})
    assert r.status_code == 400
    assert r.json()["code"] == "CartEmpty"

    catalog.fail_with = TransportError("down")
    r = _add(client, cart["id"])
    assert r.status_code == 503
    assert r.json()["code"] == "TransportError"


def test_expired_cart_is_gone(client, clock):
    cart = _create(client)
    clock.advance(hours=73)
    r = client.get(f"/api/carts/{cart['id']}")
    assert r.status_code == 410
    assert r.json()["code"] == "CartExpired"


def test_checkout_then_no_more_changes(client):
    cart = _create(client, headers=USER)
    _add(client, cart["id"], headers=USER)

    r = client.post(f"/api/carts/{cart['id']}/checkout", headers=USER)
    assert r.status_code == 200
    assert r.json()["status"] == "processing"

    r = _add(client, cart["id"], "p2", headers=USER)
    assert r.status_code == 409
    assert r.json()["code"] == "CartNotActive"


def test_other_users_cart_is_forbidden(client):
    cart = _create(client, headers=USER)
    assert client.get(f"/api/carts/{cart['id']}", headers=OTHER).status_code == 403
    assert _add(client, cart["id"], headers=OTHER).status_code == 403


def test_user_cart_is_created_on_demand(client):
    assert client.get("/api/user/cart").status_code == 401

    first = client.get("/api/user/cart", headers=USER).json()
    assert first["userId"] == "user-1"
    again = client.get("/api/user/cart", headers=USER).json()
    assert again["id"] == first["id"]


def test_user_cart_replaced_after_expiry(client, clock):
    first = client.get("/api/user/cart", headers=USER).json()
    clock.advance(hours=73)
    second = client.get("/api/user/cart", headers=USER).json()
    assert second["id"] != first["id"]


def test_merge_guest_cart(client):
    guest = _create(client)
    _add(client, guest["id"], "p2", price=5.0, quantity=2)
    mine = client.get("/api/user/cart", headers=USER).json()
    _add(client, mine["id"], "p2", price=5.0, quantity=1, headers=USER)

    r = client.post(f"/api/carts/{mine['id']}/merge", json={"guestCartId": guest["id"]}, headers=USER)
    assert r.status_code == 200, r.text
    assert r.json()["items"][0]["quantity"] == 3

    retired = client.get(f"/api/carts/{guest['id']}").json()
    assert retired["status"] == "completed"
    assert retired["metadata"]["mergedTo"] == mine["id"]


def test_merge_guards(client):
    guest = _create(client)
    mine = _create(client, headers=USER)

    r = client.post(f"/api/carts/{mine['id']}/merge", json={"guestCartId": guest["id"]})
    assert r.status_code == 401

    r = client.post(f"/api/carts/{guest['id']}/merge", json={"guestCartId": mine["id"]}, headers=USER)
    assert r.status_code == 400

    r = client.post(f"/api/carts/{mine['id']}/merge", json={"guestCartId": guest["id"]}, headers=OTHER)
    assert r.status_code == 403

    r = client.post(f"/api/carts/{mine['id']}/merge", json={"guestCartId": mine["id"]}, headers=USER)
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidMerge"


def test_admin_statistics_and_sweep(client, clock):
    assert client.get("/api/admin/carts/statistics").status_code == 401

    cart = _create(client)
    _add(client, cart["id"], price=10.0, quantity=1)
    clock.advance(hours=25)

    r = client.post("/api/admin/carts/sweep", headers=USER)
    assert r.status_code == 200
    assert r.json() == {"abandoned": 1}

    r = client.get("/api/admin/carts/statistics", params={"range": "week"}, headers=USER)
    assert r.status_code == 200
    stats = r.json()
    assert stats["totalCarts"] == 1
    assert stats["abandonedCarts"] == 1
    assert stats["averageCartValue"] == "11.80"

    # unknown range falls back to a single day
    r = client.get("/api/admin/carts/statistics", params={"range": "decade"}, headers=USER)
    assert r.json()["totalCarts"] == 0


def test_merge_of_another_users_cart_is_rejected(client):
    theirs = _create(client, headers=OTHER)
    _add(client, theirs["id"], "p1", quantity=2, headers=OTHER)
    mine = _create(client, headers=USER)

    r = client.post(f"/api/carts/{mine['id']}/merge", json={"guestCartId": theirs["id"]}, headers=USER)
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidMerge"

    victim = client.get(f"/api/carts/{theirs['id']}", headers=OTHER).json()
    assert victim["status"] == "active"
    assert victim["items"][0]["quantity"] == 2
    assert client.get(f"/api/carts/{mine['id']}", headers=USER).json()["items"] == []
