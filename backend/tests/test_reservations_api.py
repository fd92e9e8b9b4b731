"""
HTTP tests for the reservation, court, client and pricing routes
"""

from decimal import Decimal

from fastapi.testclient import TestClient

DAY = "2025-01-06"


def create_payload(court, start="10:00", end="11:00", day=DAY, **kwargs):
    payload = {
        "court_id": court.id,
        "booking_date": day,
        "start_time": start,
        "end_time": end,
        "client_name": "Ana Souza",
        "client_phone": "11999990000",
    }
    payload.update(kwargs)
    return payload


def test_health(client: TestClient):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_missing_actor_headers_is_rejected(client: TestClient, court):
    response = client.post("/api/reservations", json=create_payload(court))
    assert response.status_code == 422


def test_unknown_role_header_is_forbidden(client: TestClient, court, tenant):
    headers = {"X-Tenant-Id": str(tenant.id), "X-User-Id": "1", "X-Role": "janitor"}
    response = client.get("/api/reservations", headers=headers)
    assert response.status_code == 403


def test_create_then_conflict(client: TestClient, court, staff_headers):
    created = client.post("/api/reservations", json=create_payload(court), headers=staff_headers)
    assert created.status_code == 201
    body = created.json()
    assert body["start_time"] == "10:00:00"
    assert Decimal(body["total_amount"]) == Decimal("50.00")
    assert body["payment_status"] == "awaiting"

    conflict = client.post(
        "/api/reservations", json=create_payload(court, "10:30", "11:30", client_name="Bruno"), headers=staff_headers
    )
    assert conflict.status_code == 409
    detail = conflict.json()
    assert "10:00-11:00" in detail["detail"]
    assert detail["conflicts"][0]["reservation_id"] == body["id"]
    assert detail["race_lost"] is False

    adjacent = client.post(
        "/api/reservations", json=create_payload(court, "11:00", "12:00", client_name="Bruno"), headers=staff_headers
    )
    assert adjacent.status_code == 201


def test_invalid_interval_is_422(client: TestClient, court, staff_headers):
    response = client.post("/api/reservations", json=create_payload(court, "11:00", "10:00"), headers=staff_headers)
    assert response.status_code == 422


def test_bad_enum_is_422(client: TestClient, court, staff_headers):
    response = client.post("/api/reservations", json=create_payload(court, kind="party"), headers=staff_headers)
    assert response.status_code == 422


def test_recurring_instance_kind_is_rejected(client: TestClient, court, staff_headers):
    response = client.post(
        "/api/reservations", json=create_payload(court, kind="recurring_instance"), headers=staff_headers
    )
    assert response.status_code == 422

    recurring = create_payload(court, kind="recurring_instance", recurrence={"frequency": "weekly", "occurrences": 2})
    assert client.post("/api/reservations/recurring", json=recurring, headers=staff_headers).status_code == 422
    assert client.get("/api/reservations", headers=staff_headers).json() == []


def test_recurring_endpoint(client: TestClient, court, staff_headers):
    client.post(
        "/api/reservations",
        json=create_payload(court, day="2025-01-13", client_name="Bruno"),
        headers=staff_headers,
    )

    payload = create_payload(court, recurrence={"frequency": "weekly", "occurrences": 4})
    response = client.post("/api/reservations/recurring", json=payload, headers=staff_headers)

    assert response.status_code == 201
    body = response.json()
    assert [r["booking_date"] for r in body["created_instances"]] == ["2025-01-06", "2025-01-20", "2025-01-27"]
    assert body["skipped_instances"][0]["booking_date"] == "2025-01-13"
    assert body["truncated"] is False


def test_availability_endpoint(client: TestClient, court, staff_headers):
    client.post("/api/reservations", json=create_payload(court), headers=staff_headers)

    response = client.get(f"/api/courts/{court.id}/availability", params={"date": DAY}, headers=staff_headers)
    assert response.status_code == 200
    slots = {s["start_time"]: s for s in response.json()}
    assert slots["10:00"]["status"] == "occupied"
    assert slots["11:00"]["status"] == "available"


def test_cancel_and_logical_listing(client: TestClient, court, staff_headers):
    first = client.post("/api/reservations", json=create_payload(court), headers=staff_headers).json()
    second = client.post("/api/reservations", json=create_payload(court, "11:00", "12:00"), headers=staff_headers).json()

    logical = client.get("/api/reservations/logical", headers=staff_headers).json()
    assert len(logical) == 1
    assert logical[0]["reservation_ids"] == [first["id"], second["id"]]
    assert logical[0]["start_time"] == "10:00"
    assert logical[0]["end_time"] == "12:00"
    assert Decimal(logical[0]["total_amount"]) == Decimal("100.00")

    cancelled = client.post(f"/api/reservations/{second['id']}/cancel", json={"reason": "chuva"}, headers=staff_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    logical = client.get("/api/reservations/logical", headers=staff_headers).json()
    assert logical[0]["reservation_ids"] == [first["id"]]


def test_payment_and_status_endpoints(client: TestClient, court, staff_headers):
    reservation = client.post("/api/reservations", json=create_payload(court), headers=staff_headers).json()

    paid = client.patch(
        f"/api/reservations/{reservation['id']}/payment",
        json={"advance_payment": "50.00", "payment_method": "pix"},
        headers=staff_headers,
    )
    assert paid.status_code == 200
    assert paid.json()["payment_status"] == "paid"

    over = client.patch(
        f"/api/reservations/{reservation['id']}/payment", json={"advance_payment": "80.00"}, headers=staff_headers
    )
    assert over.status_code == 422

    confirmed = client.patch(
        f"/api/reservations/{reservation['id']}/status", json={"status": "confirmed"}, headers=staff_headers
    )
    assert confirmed.json()["status"] == "confirmed"


def test_reschedule_endpoint(client: TestClient, court, staff_headers):
    reservation = client.post("/api/reservations", json=create_payload(court), headers=staff_headers).json()
    response = client.post(
        f"/api/reservations/{reservation['id']}/reschedule",
        json={"booking_date": DAY, "start_time": "18:00", "end_time": "19:00"},
        headers=staff_headers,
    )
    assert response.status_code == 200
    assert response.json()["start_time"] == "18:00:00"


def test_other_tenant_gets_404(client: TestClient, court, staff_headers, other_tenant):
    reservation = client.post("/api/reservations", json=create_payload(court), headers=staff_headers).json()
    outsider = {"X-Tenant-Id": str(other_tenant.id), "X-User-Id": "9", "X-Role": "admin"}

    assert client.get(f"/api/reservations/{reservation['id']}", headers=outsider).status_code == 404
    assert client.post("/api/reservations", json=create_payload(court), headers=outsider).status_code == 404
    assert client.get("/api/reservations", headers=outsider).json() == []


def test_staff_cannot_create_courts(client: TestClient, staff_headers, admin_headers):
    payload = {"name": "Quadra 3", "sport": "tennis", "price_per_hour": "70.00"}
    assert client.post("/api/courts", json=payload, headers=staff_headers).status_code == 403

    created = client.post("/api/courts", json=payload, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["status"] == "active"


def test_pricing_rule_changes_quote(client: TestClient, court, admin_headers, staff_headers):
    rule = {
        "name": "Noite",
        "price_type": "fixed",
        "base_price": "80.00",
        "start_time": "18:00",
        "end_time": "22:00",
    }
    assert client.post("/api/pricing-rules", json=rule, headers=admin_headers).status_code == 201

    night = client.post("/api/reservations", json=create_payload(court, "19:00", "20:00"), headers=staff_headers)
    assert Decimal(night.json()["total_amount"]) == Decimal("80.00")


def test_pricing_rule_requires_amount(client: TestClient, admin_headers):
    response = client.post("/api/pricing-rules", json={"name": "x", "price_type": "discount"}, headers=admin_headers)
    assert response.status_code == 422


def test_client_registry(client: TestClient, staff_headers):
    created = client.post(
        "/api/clients", json={"full_name": "Carla Dias", "phone": "11977776666"}, headers=staff_headers
    )
    assert created.status_code == 201

    found = client.get("/api/clients/search", params={"query": "carla"}, headers=staff_headers).json()
    assert [c["full_name"] for c in found] == ["Carla Dias"]
    assert client.get("/api/clients/search", params={"query": ""}, headers=staff_headers).json() == []


def test_tenant_admin_requires_super_admin(client: TestClient, tenant, admin_headers):
    payload = {"name": "Arena Norte", "subdomain": "arena-norte"}
    assert client.post("/api/admin/tenants", json=payload, headers=admin_headers).status_code == 403

    root = {"X-Tenant-Id": str(tenant.id), "X-User-Id": "0", "X-Role": "super_admin"}
    assert client.post("/api/admin/tenants", json=payload, headers=root).status_code == 201
    assert client.post("/api/admin/tenants", json=payload, headers=root).status_code == 409
