import uuid

import jwt
import pytest
from sqlalchemy import select

from models import Account, ShopProfile


async def test_admin_routes_require_secret(client):
    response = await client.get("/api/admin/wholesalers")
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"

    response = await client.get("/api/admin/wholesalers", headers={"X-Admin-Secret": "guess"})
    assert response.status_code == 403


async def test_admin_routes_closed_without_configured_secret(client, admin_headers, monkeypatch):
    monkeypatch.setattr("dependencies.rbac.ADMIN_SECRET", None)

    response = await client.get("/api/admin/wholesalers", headers=admin_headers)

    assert response.status_code == 403


# =================
# VERIFICATION
# =================

async def test_verify_wholesaler_activates_account(client, session_factory, make_wholesaler, admin_headers):
    wholesaler = await make_wholesaler(verified=False, is_active=False)

    response = await client.post(
        "/api/admin/verify-wholesaler",
        json={"wholesaler_id": str(wholesaler.id)},
        headers=admin_headers
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["wholesaler"]["is_active"] is True
    assert data["shop_profile"]["is_wholesaler_verified"] is True
    assert jwt.decode(data["token"], "test-jwt-secret", algorithms=["HS256"])["is_active"] is True

    async with session_factory() as session:
        account = (await session.execute(select(Account).where(Account.id == wholesaler.id))).scalar_one()
        profile = (await session.execute(
            select(ShopProfile).where(ShopProfile.wholesaler_id == wholesaler.id)
        )).scalar_one()
    assert account.is_active is True
    assert profile.is_wholesaler_verified is True

    response = await client.post(
        "/api/admin/verify-wholesaler",
        json={"wholesaler_id": str(wholesaler.id)},
        headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Conflict"


async def test_verify_unknown_wholesaler(client, make_retailer, admin_headers):
    retailer = await make_retailer()

    for wholesaler_id in (uuid.uuid4(), retailer.id):
        response = await client.post(
            "/api/admin/verify-wholesaler",
            json={"wholesaler_id": str(wholesaler_id)},
            headers=admin_headers
        )
        assert response.status_code == 404


@pytest.mark.parametrize("decision", ["Completed", "Rejected"])
async def test_kyc_decision(client, make_wholesaler, admin_headers, decision):
    wholesaler = await make_wholesaler(kyc_status="Pending")

    response = await client.patch(
        f"/api/admin/wholesaler/{wholesaler.id}/kyc-verify",
        json={"kyc_status": decision},
        headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["data"]["kyc_status"] == decision


async def test_kyc_decision_must_be_final_state(client, make_wholesaler, admin_headers):
    wholesaler = await make_wholesaler(kyc_status="Pending")

    response = await client.patch(
        f"/api/admin/wholesaler/{wholesaler.id}/kyc-verify",
        json={"kyc_status": "Pending"},
        headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationFailed"


async def test_product_decision(client, make_wholesaler, make_product, admin_headers):
    wholesaler = await make_wholesaler()
    product = await make_product(wholesaler, product_name="Mango", filters=[("variety", "Kesar")])

    response = await client.patch(
        f"/api/admin/product/{product.id}/verify",
        json={"approval_status": "Verified"},
        headers=admin_headers
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["approval_status"] == "Verified"
    assert data["filters"] == [{"key": "variety", "value": "Kesar"}]

    response = await client.patch(
        f"/api/admin/product/{uuid.uuid4()}/verify",
        json={"approval_status": "Rejected"},
        headers=admin_headers
    )
    assert response.status_code == 404


async def test_list_wholesalers(client, make_wholesaler, admin_headers):
    wholesaler = await make_wholesaler(business_name="Ravi Fresh Produce")

    response = await client.get("/api/admin/wholesalers", headers=admin_headers)

    data = response.json()["data"]
    assert data["total"] == 1
    listed = data["wholesalers"][0]
    assert listed["business_name"] == "Ravi Fresh Produce"
    assert listed["wholesaler"]["id"] == str(wholesaler.id)
    assert listed["wholesaler"]["phone_number"] == "9800000001"


# =================
# CATEGORIES
# =================

async def test_category_lifecycle(client, admin_headers):
    response = await client.post(
        "/api/admin/category/create",
        json={"name": "Vegetables", "description": "Fresh vegetables"},
        headers=admin_headers
    )
    assert response.status_code == 201
    category_id = response.json()["data"]["id"]

    await client.post("/api/admin/category/create", json={"name": "Fruits"}, headers=admin_headers)

    response = await client.get("/api/admin/category")
    assert response.status_code == 200
    assert [c["name"] for c in response.json()["data"]["categories"]] == ["Fruits", "Vegetables"]

    response = await client.put(
        f"/api/admin/category/{category_id}",
        json={"name": "Green Vegetables"},
        headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Green Vegetables"
    assert response.json()["data"]["description"] == "Fresh vegetables"

    response = await client.delete(f"/api/admin/category/{category_id}", headers=admin_headers)
    assert response.status_code == 200

    response = await client.get("/api/admin/category")
    assert [c["name"] for c in response.json()["data"]["categories"]] == ["Fruits"]


async def test_duplicate_category_conflicts(client, make_category, admin_headers):
    await make_category("Fruits")
    vegetables = await make_category("Vegetables")

    response = await client.post("/api/admin/category/create", json={"name": "Fruits"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Conflict"

    response = await client.put(
        f"/api/admin/category/{vegetables.id}",
        json={"name": "Fruits"},
        headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Conflict"


async def test_category_writes_require_admin(client):
    response = await client.post("/api/admin/category/create", json={"name": "Fruits"})

    assert response.status_code == 403


async def test_delete_unknown_category(client, admin_headers):
    response = await client.delete(f"/api/admin/category/{uuid.uuid4()}", headers=admin_headers)

    assert response.status_code == 404
