import uuid
from datetime import date, timedelta

import httpx
import pytest

from app import app
from core.get_db import get_db_async
from models.enums import LeaseStatus, PropertyStatus
from models.models import Lease

pytestmark = pytest.mark.anyio


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_async] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def _rental(client, prop, **overrides):
    body = {
        "property_id": str(prop.id),
        "tenant_id": str(uuid.uuid4()),
        "monthly_rent": "1000",
        "duration_months": 12,
        "plan": "flexi50",
    }
    body.update(overrides)
    return await client.post("/v1/checkout/rental", json=body)


async def test_health(client):
    resp = await client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_rental_checkout_and_approval(client, make_property):
    prop = await make_property()

    resp = await _rental(client, prop)
    assert resp.status_code == 201
    data = resp.json()
    assert data["lease_id"]
    assert float(data["amount"]) == 8440.0
    assert float(data["breakdown"]["commission"]) == 1440.0

    resp = await client.post(f"/v1/payments/{data['payment_id']}/approve", json={"notes": "ok"})
    assert resp.status_code == 200
    outcome = resp.json()
    assert outcome["changed"] is True
    assert outcome["verification_status"] == "verified"
    assert outcome["installments_created"] == 11

    resp = await client.post(f"/v1/payments/{data['payment_id']}/approve")
    assert resp.status_code == 200
    assert resp.json()["changed"] is False


async def test_checkout_validation_error_maps_to_422(client, make_property):
    prop = await make_property()

    resp = await _rental(client, prop, monthly_rent="-100")

    assert resp.status_code == 422
    assert resp.json()["detail"]["error"] == "ValidationError"


async def test_malformed_body_uses_validation_handler(client):
    resp = await client.post("/v1/checkout/rental", json={"duration_months": "twelve"})

    assert resp.status_code == 422
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert body["details"]


async def test_unknown_payment_maps_to_404(client):
    resp = await client.post(f"/v1/payments/{uuid.uuid4()}/approve")

    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "NotFoundError"


async def test_strict_reject_of_verified_payment_maps_to_409(client, make_property):
    prop = await make_property()
    payment_id = (await _rental(client, prop)).json()["payment_id"]
    await client.post(f"/v1/payments/{payment_id}/approve")

    resp = await client.post(f"/v1/payments/{payment_id}/reject", json={"strict": True})

    assert resp.status_code == 409
    assert resp.json()["detail"]["error"] == "InvalidTransitionError"


async def test_reject_proof_reopen_cycle(client, make_property):
    prop = await make_property()
    payment_id = (await _rental(client, prop)).json()["payment_id"]

    resp = await client.post(f"/v1/payments/{payment_id}/reject", json={"notes": "Wrong amount"})
    assert resp.json()["verification_status"] == "rejected"

    resp = await client.post(f"/v1/payments/{payment_id}/reopen")
    assert resp.status_code == 200
    assert resp.json()["verification_status"] == "pending_review"

    resp = await client.post(
        f"/v1/payments/{payment_id}/proof",
        json={"payment_method": "card", "transaction_reference": "TRX-55"},
    )
    assert resp.status_code == 200
    assert resp.json()["transaction_reference"] == "TRX-55"


async def test_proof_with_utc_offset_is_stored_naive_utc(client, make_property):
    prop = await make_property()
    payment_id = (await _rental(client, prop)).json()["payment_id"]

    resp = await client.post(
        f"/v1/payments/{payment_id}/proof",
        json={
            "payment_method": "card",
            "transaction_reference": "TRX-56",
            "payment_date": "2024-05-01T10:00:00Z",
        },
    )

    assert resp.status_code == 200
    assert resp.json()["payment_date"] == "2024-05-01T10:00:00"


async def test_edit_payment(client, make_property):
    prop = await make_property()
    payment_id = (await _rental(client, prop)).json()["payment_id"]

    resp = await client.patch(f"/v1/payments/{payment_id}", json={"notes": "Partial receipt"})
    assert resp.status_code == 200
    assert resp.json()["notes"] == "Partial receipt"

    resp = await client.patch(
        f"/v1/payments/{payment_id}", json={"verification_status": "verified"}
    )
    assert resp.status_code == 422


async def test_review_queue(client, make_property):
    prop = await make_property()
    payment_id = (await _rental(client, prop)).json()["payment_id"]

    resp = await client.get("/v1/payments/review")

    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 1
    assert body["items"][0]["id"] == payment_id


async def test_sale_and_service_checkout(client, make_property):
    prop = await make_property()

    sale = await client.post(
        "/v1/checkout/sale",
        json={"property_id": str(prop.id), "buyer_id": str(uuid.uuid4()), "price": "50000"},
    )
    service = await client.post(
        "/v1/checkout/service",
        json={"client_id": str(uuid.uuid4()), "hourly_rate": "50", "hours": "4"},
    )

    assert sale.status_code == 201
    assert sale.json()["lease_id"] is None
    assert float(sale.json()["amount"]) == 52500.0
    assert service.status_code == 201
    assert float(service.json()["amount"]) == 220.0


async def test_renewal_endpoints(client, make_lease):
    today = date.today()
    lease = await make_lease(start=today - timedelta(days=300), months=12)

    resp = await client.get(f"/v1/leases/{lease.id}/renewal")
    assert resp.status_code == 200
    assert resp.json()["eligible"] is True

    resp = await client.get(f"/v1/leases/{lease.id}/renewal/quote", params={"months": 12})
    assert resp.status_code == 200
    assert float(resp.json()["deposit"]) == 0.0

    resp = await client.post(
        f"/v1/leases/{lease.id}/renewal",
        json={"new_duration_months": 12, "notes": "Staying on"},
    )
    assert resp.status_code == 201
    assert resp.json()["renewed_from_id"] == str(lease.id)

    resp = await client.post(
        f"/v1/leases/{lease.id}/renewal", json={"new_duration_months": 6}
    )
    assert resp.status_code == 409


async def test_renewal_outside_window_maps_to_409(client, make_lease):
    lease = await make_lease(start=date.today(), months=12)

    resp = await client.post(f"/v1/leases/{lease.id}/renewal", json={"new_duration_months": 6})

    assert resp.status_code == 409


async def test_unknown_lease_renewal_maps_to_404(client):
    resp = await client.get(f"/v1/leases/{uuid.uuid4()}/renewal")

    assert resp.status_code == 404


async def test_property_left_rented_after_approval(client, make_property, db):
    prop = await make_property()
    data = (await _rental(client, prop)).json()
    await client.post(f"/v1/payments/{data['payment_id']}/approve")

    lease = await db.get(Lease, uuid.UUID(data["lease_id"]), populate_existing=True)
    assert lease.status == LeaseStatus.ACTIVE
    refreshed = await db.get(type(prop), prop.id, populate_existing=True)
    assert refreshed.status == PropertyStatus.RENTED
