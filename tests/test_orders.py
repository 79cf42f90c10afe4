import uuid
from datetime import datetime

import pytest
from sqlalchemy import select, update

from models import Account, Order, Product
from utils.notifications import get_order_status_sms


@pytest.fixture
async def wholesaler(make_wholesaler):
    return await make_wholesaler(phone_number="9800000001", name="Ravi Kumar")


@pytest.fixture
async def retailer(make_retailer):
    return await make_retailer(phone_number="9000000001", name="Asha Stores")


@pytest.fixture
async def mango(make_product, wholesaler):
    return await make_product(wholesaler, product_name="Mango", price_before_gst=50.0)


@pytest.fixture
async def onion(make_product, wholesaler):
    return await make_product(wholesaler, product_name="Onion", category_name="Vegetables", price_before_gst=10.0)


def order_payload(retailer, lines, order_total, **overrides):
    payload = {
        "retailer_id": str(retailer.id),
        "products": [{"product_id": str(product.id), "quantity": quantity} for product, quantity in lines],
        "delivery_address": "12 Market Road, Pune",
        "order_total": order_total,
        "payment_method": "cod",
        "vehicle_number": "MH12AB1234",
    }
    payload.update(overrides)
    return payload


async def place_order(client, headers, retailer, lines, order_total, **overrides):
    response = await client.post(
        "/api/wholesaler/order",
        json=order_payload(retailer, lines, order_total, **overrides),
        headers=headers
    )
    assert response.status_code == 201, response.json()
    return response.json()["data"]


async def order_count(session_factory):
    async with session_factory() as session:
        return len((await session.execute(select(Order.id))).all())


# =================
# CREATE
# =================

async def test_create_order(client, wholesaler, retailer, mango, onion, auth_headers, outbox):
    response = await client.post(
        "/api/wholesaler/order",
        json=order_payload(retailer, [(mango, 2), (onion, 3)], 130),
        headers=auth_headers(wholesaler)
    )

    assert response.status_code == 201
    order = response.json()["data"]
    assert order["status"] == "pending"
    assert order["payment_status"] == "pending"
    assert order["order_total"] == 130.0
    assert order["wholesaler_id"] == str(wholesaler.id)
    assert order["retailer"] == {
        "id": str(retailer.id),
        "name": "Asha Stores",
        "phone_number": "9000000001",
        "address": "12 Market Road, Pune",
    }
    assert [(item["product_name"], item["quantity"], item["unit_price"], item["total"]) for item in order["items"]] == [
        ("Mango", 2, 50.0, 100.0),
        ("Onion", 3, 10.0, 30.0),
    ]
    assert order["items"][0]["product"]["product_image"] == "https://cdn.test/Mango.png"

    assert [phone for phone, _ in outbox["sms"]] == ["9000000001"]
    assert [to for to, _ in outbox["email"]] == ["9000000001@shops.example.com"]


async def test_delivery_date_with_offset_is_stored_as_utc(client, session_factory, wholesaler, retailer, mango, auth_headers):
    order = await place_order(
        client, auth_headers(wholesaler), retailer, [(mango, 1)], 50,
        delivery_date="2025-06-01T15:30:00+05:30"
    )

    async with session_factory() as session:
        stored = (await session.execute(select(Order).where(Order.id == uuid.UUID(order["id"])))).scalar_one()

    assert stored.delivery_date == datetime(2025, 6, 1, 10, 0)
    assert stored.delivery_date.tzinfo is None


async def test_order_total_must_match_exactly(client, session_factory, wholesaler, retailer, mango, onion, auth_headers, outbox):
    response = await client.post(
        "/api/wholesaler/order",
        json=order_payload(retailer, [(mango, 2), (onion, 3)], 131),
        headers=auth_headers(wholesaler)
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "TotalMismatch"
    assert "calculated 130" in body["message"]
    assert await order_count(session_factory) == 0
    assert outbox["sms"] == []


async def test_order_lines_use_gst_inclusive_price(client, wholesaler, retailer, make_product, auth_headers):
    product = await make_product(
        wholesaler, product_name="Basmati Rice", category_name="Grains",
        price_before_gst=100.0, gst_category="applicable", gst_percent=5.0
    )

    order = await place_order(client, auth_headers(wholesaler), retailer, [(product, 1)], 105.0)

    assert order["items"][0]["unit_price"] == 105.0
    assert order["order_total"] == 105.0


async def test_unknown_product_is_named(client, session_factory, wholesaler, retailer, mango, auth_headers):
    missing = uuid.uuid4()
    payload = order_payload(retailer, [(mango, 1)], 50.0)
    payload["products"].append({"product_id": str(missing), "quantity": 1})

    response = await client.post("/api/wholesaler/order", json=payload, headers=auth_headers(wholesaler))

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidReference"
    assert str(missing) in response.json()["message"]
    assert await order_count(session_factory) == 0


async def test_unknown_retailer(client, wholesaler, mango, auth_headers):
    payload = order_payload(retailer=wholesaler, lines=[(mango, 1)], order_total=50.0)

    response = await client.post("/api/wholesaler/order", json=payload, headers=auth_headers(wholesaler))

    assert response.status_code == 400
    assert response.json()["message"] == "Retailer not found"


@pytest.mark.parametrize("overrides", [
    {"products": []},
    {"delivery_address": ""},
    {"retailer_id": None},
])
async def test_create_order_validation(client, wholesaler, retailer, mango, auth_headers, overrides):
    payload = order_payload(retailer, [(mango, 1)], 50.0, **overrides)

    response = await client.post("/api/wholesaler/order", json=payload, headers=auth_headers(wholesaler))

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationFailed"


async def test_quantity_must_be_positive(client, wholesaler, retailer, mango, auth_headers):
    response = await client.post(
        "/api/wholesaler/order",
        json=order_payload(retailer, [(mango, 0)], 0),
        headers=auth_headers(wholesaler)
    )

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationFailed"


async def test_deactivated_wholesaler_cannot_order(client, session_factory, wholesaler, retailer, mango, auth_headers):
    headers = auth_headers(wholesaler)
    async with session_factory() as session:
        await session.execute(update(Account).where(Account.id == wholesaler.id).values(is_active=False))
        await session.commit()

    response = await client.post("/api/wholesaler/order", json=order_payload(retailer, [(mango, 1)], 50.0), headers=headers)

    assert response.status_code == 403


async def test_line_prices_are_snapshots(client, session_factory, wholesaler, retailer, mango, auth_headers):
    order = await place_order(client, auth_headers(wholesaler), retailer, [(mango, 2)], 100.0)

    async with session_factory() as session:
        await session.execute(
            update(Product).where(Product.id == mango.id).values(price_before_gst=70.0, price_after_gst=70.0)
        )
        await session.commit()

    response = await client.get(f"/api/wholesaler/order/{order['id']}", headers=auth_headers(wholesaler))

    item = response.json()["data"]["items"][0]
    assert item["unit_price"] == 50.0
    assert item["total"] == 100.0
    assert item["product"]["price_after_gst"] == 70.0
    assert response.json()["data"]["order_total"] == 100.0


# =================
# READS
# =================

async def test_get_order_checks_ownership(client, make_wholesaler, wholesaler, retailer, mango, auth_headers):
    order = await place_order(client, auth_headers(wholesaler), retailer, [(mango, 1)], 50.0)
    other = await make_wholesaler(phone_number="9800000002")

    response = await client.get(f"/api/wholesaler/order/{order['id']}", headers=auth_headers(other))
    assert response.status_code == 403

    response = await client.get(f"/api/wholesaler/order/{uuid.uuid4()}", headers=auth_headers(wholesaler))
    assert response.status_code == 404


async def test_list_orders(client, make_wholesaler, wholesaler, retailer, mango, onion, auth_headers):
    headers = auth_headers(wholesaler)
    await place_order(client, headers, retailer, [(mango, 1)], 50.0)
    await place_order(client, headers, retailer, [(onion, 2)], 20.0)
    other = await make_wholesaler(phone_number="9800000002")

    response = await client.get("/api/wholesaler/order", headers=headers)
    data = response.json()["data"]
    assert data["total"] == 2
    assert len(data["orders"]) == 2

    response = await client.get("/api/wholesaler/order", headers=auth_headers(other))
    assert response.json()["data"]["total"] == 0


async def test_search_orders(client, wholesaler, retailer, make_retailer, mango, onion, auth_headers):
    headers = auth_headers(wholesaler)
    second_retailer = await make_retailer(phone_number="9000000002", name="Kiran Mart")
    first = await place_order(client, headers, retailer, [(mango, 4)], 200.0, vehicle_number="MH12AB1234")
    second = await place_order(client, headers, second_retailer, [(onion, 2)], 20.0,
                               vehicle_number="KA01XY9999", payment_method="upi")

    await client.patch(f"/api/wholesaler/order/{second['id']}/status", json={"status": "confirmed"}, headers=headers)

    async def search(params):
        response = await client.get("/api/wholesaler/order/search/filter", params=params, headers=headers)
        assert response.status_code == 200
        return [order["id"] for order in response.json()["data"]["orders"]]

    assert await search({"status": "CONFIRMED"}) == [second["id"]]
    assert await search({"retailer_id": str(retailer.id)}) == [first["id"]]
    assert await search({"min_total": 100}) == [first["id"]]
    assert await search({"max_total": 100}) == [second["id"]]
    assert await search({"payment_method": "UPI"}) == [second["id"]]
    assert await search({"vehicle_number": "ab12"}) == [first["id"]]
    assert await search({"status": "pending", "vehicle_number": "ka01"}) == []
    assert sorted(await search({"from_date": "not-a-date"})) == sorted([first["id"], second["id"]])
    assert await search({"from_date": "2999-01-01"}) == []


# =================
# STATUS TRANSITIONS
# =================

async def test_order_moves_through_lifecycle(client, wholesaler, retailer, mango, auth_headers, outbox):
    headers = auth_headers(wholesaler)
    order = await place_order(client, headers, retailer, [(mango, 1)], 50.0)
    outbox["sms"].clear()

    for target in ("confirmed", "dispatched", "delivered"):
        response = await client.patch(
            f"/api/wholesaler/order/{order['id']}/status",
            json={"status": target},
            headers=headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == target

    assert [body for _, body in outbox["sms"]] == [
        get_order_status_sms(order["id"], "confirmed"),
        get_order_status_sms(order["id"], "dispatched"),
        get_order_status_sms(order["id"], "delivered"),
    ]

    response = await client.patch(
        f"/api/wholesaler/order/{order['id']}/status",
        json={"status": "cancelled"},
        headers=headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidTransition"


async def test_status_is_case_insensitive(client, wholesaler, retailer, mango, auth_headers):
    headers = auth_headers(wholesaler)
    order = await place_order(client, headers, retailer, [(mango, 1)], 50.0)

    response = await client.patch(f"/api/wholesaler/order/{order['id']}/status", json={"status": "Confirmed"}, headers=headers)

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "confirmed"


@pytest.mark.parametrize("target", ["delivered", "dispatched", "pending", "shipped"])
async def test_invalid_transitions_from_pending(client, wholesaler, retailer, mango, auth_headers, target):
    headers = auth_headers(wholesaler)
    order = await place_order(client, headers, retailer, [(mango, 1)], 50.0)

    response = await client.patch(f"/api/wholesaler/order/{order['id']}/status", json={"status": target}, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidTransition"


async def test_cancellation_stores_reason(client, wholesaler, retailer, mango, auth_headers, outbox):
    headers = auth_headers(wholesaler)
    order = await place_order(client, headers, retailer, [(mango, 1)], 50.0)

    response = await client.patch(
        f"/api/wholesaler/order/{order['id']}/status",
        json={"status": "cancelled", "cancellation_reason": "Out of stock", "notes": "Call retailer"},
        headers=headers
    )

    data = response.json()["data"]
    assert data["status"] == "cancelled"
    assert data["cancellation_reason"] == "Out of stock"
    assert data["notes"] == "Call retailer"
    assert outbox["sms"][-1] == ("9000000001", get_order_status_sms(order["id"], "cancelled", "Out of stock"))


async def test_only_owner_can_change_status(client, make_wholesaler, wholesaler, retailer, mango, auth_headers):
    order = await place_order(client, auth_headers(wholesaler), retailer, [(mango, 1)], 50.0)
    other = await make_wholesaler(phone_number="9800000002")

    response = await client.patch(
        f"/api/wholesaler/order/{order['id']}/status",
        json={"status": "confirmed"},
        headers=auth_headers(other)
    )

    assert response.status_code == 403


async def test_status_of_unknown_order(client, wholesaler, auth_headers):
    response = await client.patch(
        f"/api/wholesaler/order/{uuid.uuid4()}/status",
        json={"status": "confirmed"},
        headers=auth_headers(wholesaler)
    )

    assert response.status_code == 404
