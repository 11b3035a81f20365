from decimal import Decimal


QUOTATION = {
    "company": "Client Co",
    "project": "HQ fit-out",
    "discount_type": "percentage",
    "discount_value": "10",
    "tax_rate": "8",
    "items": [{"system": "LED", "description": "Panel", "unit": "pcs", "qty": 2, "amount": 100}],
    "terms": ["Delivery in 4 weeks"],
}


async def test_health(api):
    res = await api.get("/")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    assert res.headers["X-Request-ID"]


async def test_request_id_is_echoed(api):
    res = await api.get("/", headers={"X-Request-ID": "abc123"})
    assert res.headers["X-Request-ID"] == "abc123"


async def test_login_and_use_token(api, password):
    res = await api.post("/auth/login", json={"email": "manager@acme.io", "password": password})
    assert res.status_code == 200

    body = res.json()
    assert body["success"] is True
    assert body["data"]["user"]["role"] == "manager"

    token = body["data"]["auth"]["access_token"]
    res = await api.get("/quotations", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200


async def test_login_with_wrong_password(api):
    res = await api.post("/auth/login", json={"email": "manager@acme.io", "password": "nope"})
    assert res.status_code == 401
    assert res.json()["error_code"] == "UNAUTHORIZED"


async def test_logout_invalidates_token(api, headers):
    h = headers("sales@acme.io")

    res = await api.post("/auth/logout", headers=h)
    assert res.status_code == 200

    res = await api.get("/quotations", headers=h)
    assert res.status_code == 401


async def test_missing_authorization_header(api):
    res = await api.get("/quotations")
    assert res.status_code == 422
    assert res.json()["error_code"] == "VALIDATION_ERROR"


async def test_create_approve_and_list(api, headers):
    manager = headers("manager@acme.io")

    res = await api.post("/quotations", json=QUOTATION, headers=manager)
    assert res.status_code == 200
    created = res.json()["data"]
    assert created["internal_status"] == "pending"
    assert Decimal(str(created["totals"]["total"])) == Decimal("194.4")
    assert created["items"][0]["qty"] == "2"

    res = await api.post(f"/quotations/{created['id']}/approve", headers=manager)
    assert res.status_code == 200
    assert res.json()["data"]["internal_status"] == "approved"

    res = await api.post(f"/quotations/{created['id']}/approve", headers=manager)
    assert res.status_code == 409
    assert res.json()["error_code"] == "QUOTATION_INVALID_STATE"

    res = await api.get("/quotations", params={"internal_status": "approved"}, headers=manager)
    data = res.json()["data"]
    assert data["total"] == 1
    assert data["items"][0]["id"] == created["id"]


async def test_permission_denied_envelope(api, headers):
    res = await api.post("/quotations", json=QUOTATION, headers=headers("sales@acme.io"))
    quotation_id = res.json()["data"]["id"]

    res = await api.post(f"/quotations/{quotation_id}/approve", headers=headers("sales@acme.io"))

    assert res.status_code == 403
    body = res.json()
    assert body["success"] is False
    assert body["error_code"] == "PERMISSION_DENIED"
    assert body["details"] == {"feature_id": "approve_quotations", "role": "sales"}


async def test_client_flow_over_http(api, headers):
    manager = headers("manager@acme.io")
    buyer = headers("buyer@client.io")

    quotation_id = (await api.post("/quotations", json=QUOTATION, headers=manager)).json()["data"]["id"]
    await api.post(f"/quotations/{quotation_id}/approve", headers=manager)

    res = await api.post(f"/quotations/{quotation_id}/client-approve", headers=buyer)
    assert res.status_code == 200
    assert res.json()["data"]["external_status"] == "approved"

    res = await api.post(
        f"/quotations/{quotation_id}/purchase-order", json={"po_no": "PO-9"}, headers=buyer,
    )
    assert res.json()["data"]["po_no"] == "PO-9"

    res = await api.get(f"/quotations/{quotation_id}", headers=headers("buyer@other.io"))
    assert res.status_code == 404


async def test_preview_totals(api, headers):
    res = await api.post(
        "/quotations/preview-totals",
        json={"discount_type": "fixed", "discount_value": "20", "tax_rate": "0", "items": QUOTATION["items"]},
        headers=headers("sales@acme.io"),
    )
    assert res.status_code == 200
    assert Decimal(str(res.json()["data"]["total"])) == Decimal("180")


async def test_invalid_payload(api, headers):
    res = await api.post("/quotations", json={"items": []}, headers=headers("manager@acme.io"))
    assert res.status_code == 422


async def test_revise_over_http(api, headers):
    manager = headers("manager@acme.io")

    parent = (await api.post("/quotations", json=QUOTATION, headers=manager)).json()["data"]
    await api.post(f"/quotations/{parent['id']}/approve", headers=manager)
    await api.post(f"/quotations/{parent['id']}/request-revise", headers=manager)

    res = await api.post(f"/quotations/{parent['id']}/revise", json=QUOTATION, headers=manager)
    assert res.status_code == 200
    child = res.json()["data"]
    assert child["quotation_number"] == f"{parent['quotation_number']}R1"
    assert child["external_status"] == "Pending Review"


async def test_feature_admin_endpoints(api, headers):
    admin = headers("admin@acme.io")

    res = await api.get("/features/external", headers=admin)
    assert res.status_code == 200
    assert {f["id"] for f in res.json()["data"]["items"]} == {"approve_quotations", "request_quotations"}

    res = await api.post("/roles/external", json={"name": "Auditor"}, headers=admin)
    assert res.json()["data"]["id"] == "ext_auditor"

    res = await api.get("/features/internal", headers=headers("manager@acme.io"))
    assert res.status_code == 403


async def test_quotation_request_endpoints(api, headers):
    res = await api.post(
        "/quotation-requests", json={"customer_name": "Dana"}, headers=headers("viewer@client.io"),
    )
    assert res.status_code == 200
    request_id = res.json()["data"]["id"]

    res = await api.post(f"/quotation-requests/{request_id}/reject", headers=headers("manager@acme.io"))
    assert res.json()["data"]["status"] == "rejected"


async def test_activity_log(api, headers):
    await api.post("/quotations", json=QUOTATION, headers=headers("manager@acme.io"))

    res = await api.get("/activities/", headers=headers("admin@acme.io"))
    assert res.status_code == 200
    assert res.json()["data"]["total"] >= 1

    res = await api.get("/activities/", headers=headers("manager@acme.io"))
    assert res.status_code == 403


async def test_total_beyond_storable_amount_is_bad_request(api, headers):
    payload = dict(QUOTATION, items=[{"system": "LED", "description": "Panel", "unit": "pcs", "qty": "1", "amount": "1e30"}])

    res = await api.post("/quotations", json=payload, headers=headers("manager@acme.io"))

    assert res.status_code == 400
    assert res.json()["error_code"] == "MALFORMED_INPUT"
