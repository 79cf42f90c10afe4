import uuid

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from models import Account, ShopProfile
from routers.wholesalers.schemas import KycAccountRequest


def kyc_profile_payload(wholesaler_id, **overrides):
    payload = {
        "wholesaler_id": str(wholesaler_id),
        "full_name": "Ravi Kumar",
        "email": "ravi@produce.example.com",
        "business_name": "Ravi Fresh Produce",
        "business_type": "Proprietorship",
        "gst_number": "27ABCDE1234F1Z5",
        "apmc_region": "Mumbai APMC",
        "business_hours": {
            "mon_to_sat": {"open": "08:00 AM", "close": "08:00 PM"},
            "sunday": {"open": "09:00 AM", "close": "01:00 PM"},
        },
        "business_address": {"shop_number": "B-14", "city": "Navi Mumbai", "pincode": "400703"},
        "location": {"latitude": 19.07, "longitude": 73.01},
    }
    payload.update(overrides)
    return payload


def kyc_files():
    return {
        "business_certificate": ("certificate.pdf", b"%PDF-1.4 certificate", "application/pdf"),
        "id_proof": ("aadhaar.png", b"\x89PNG id proof", "image/png"),
    }


async def load_state(session_factory, wholesaler_id):
    async with session_factory() as session:
        account = (await session.execute(select(Account).where(Account.id == wholesaler_id))).scalar_one()
        profile = (await session.execute(
            select(ShopProfile).where(ShopProfile.wholesaler_id == wholesaler_id)
        )).scalar_one()
        return account, profile


# =================
# SIGNUP
# =================

async def test_wholesaler_signup_creates_inactive_account(client, session_factory, make_otp):
    await make_otp("9800000001")

    response = await client.post("/api/wholesaler/auth/signup", json={"phone_number": "9800000001", "otp": "123456"})

    assert response.status_code == 201
    wholesaler_id = uuid.UUID(response.json()["data"]["wholesaler_id"])
    account, profile = await load_state(session_factory, wholesaler_id)
    assert account.role == "Wholesaler"
    assert account.is_active is False
    assert account.is_phone_verified is True
    assert profile.kyc_status == "Pending"


async def test_repeat_signup_without_shop_details_returns_existing_id(client, make_otp, make_wholesaler):
    wholesaler = await make_wholesaler(phone_number="9800000001", has_shop_detail=False, is_active=False)
    await make_otp("9800000001")

    response = await client.post("/api/wholesaler/auth/signup", json={"phone_number": "9800000001", "otp": "123456"})

    assert response.status_code == 200
    assert response.json()["data"] == {"wholesaler_id": str(wholesaler.id)}


async def test_signup_with_completed_profile_conflicts(client, make_otp, make_wholesaler):
    await make_wholesaler(phone_number="9800000001")
    await make_otp("9800000001")

    response = await client.post("/api/wholesaler/auth/signup", json={"phone_number": "9800000001", "otp": "123456"})

    assert response.status_code == 400
    assert response.json()["error"] == "Conflict"


async def test_signup_with_retailer_phone_is_forbidden(client, make_otp, make_retailer):
    await make_retailer(phone_number="9800000001")
    await make_otp("9800000001")

    response = await client.post("/api/wholesaler/auth/signup", json={"phone_number": "9800000001", "otp": "123456"})

    assert response.status_code == 403


# =================
# KYC STEPS
# =================

async def test_full_kyc_flow(client, session_factory, make_wholesaler, uploads):
    wholesaler = await make_wholesaler(has_shop_detail=False, is_active=False, verified=False)

    response = await client.post("/api/wholesaler/auth/kyc/profile", json=kyc_profile_payload(wholesaler.id))
    assert response.status_code == 200
    assert response.json()["data"]["gst_number"] == "27ABCDE1234F1Z5"
    assert response.json()["data"]["business_hours"]["sunday"]["close"] == "01:00 PM"

    response = await client.post(
        "/api/wholesaler/auth/kyc/documents",
        data={"wholesaler_id": str(wholesaler.id)},
        files=kyc_files()
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["business_certificate"] == f"https://cdn.test/kyc/{wholesaler.id}/business-certificates/certificate.pdf"
    assert data["business_registration"] is None
    assert len(uploads) == 2

    response = await client.post(
        "/api/wholesaler/auth/kyc/account",
        json={"wholesaler_id": str(wholesaler.id), "upi_id": "ravi.produce@okaxis"}
    )
    assert response.status_code == 201
    assert response.json()["data"]["upi_id"] == "ravi.produce@okaxis"

    account, profile = await load_state(session_factory, wholesaler.id)
    assert account.has_shop_detail is True
    assert profile.kyc_status == "Pending"
    assert profile.is_wholesaler_verified is False

    response = await client.post("/api/wholesaler/auth/kyc/profile", json=kyc_profile_payload(wholesaler.id))
    assert response.status_code == 400
    assert response.json()["error"] == "Conflict"


async def test_bank_details_replace_upi(client, session_factory, make_wholesaler):
    wholesaler = await make_wholesaler(
        has_shop_detail=False,
        kyc_status="Pending",
        business_name="Ravi Fresh Produce",
        gst_number="27ABCDE1234F1Z5",
        apmc_region="Mumbai APMC",
        business_certificate="https://cdn.test/certificate.pdf",
        id_proof="https://cdn.test/id.png",
        upi_id="old@okaxis"
    )

    response = await client.post("/api/wholesaler/auth/kyc/account", json={
        "wholesaler_id": str(wholesaler.id),
        "account_holder_name": "Ravi Kumar",
        "account_number": "123456789012",
        "ifsc_code": "HDFC0001234",
        "bank_name": "HDFC Bank",
    })

    assert response.status_code == 201
    _, profile = await load_state(session_factory, wholesaler.id)
    assert profile.upi_id is None
    assert profile.ifsc_code == "HDFC0001234"


async def test_documents_require_business_profile(client, make_wholesaler, uploads):
    wholesaler = await make_wholesaler(has_shop_detail=False)

    response = await client.post(
        "/api/wholesaler/auth/kyc/documents",
        data={"wholesaler_id": str(wholesaler.id)},
        files=kyc_files()
    )

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationFailed"
    assert uploads == []


async def test_account_requires_documents(client, make_wholesaler):
    wholesaler = await make_wholesaler(
        has_shop_detail=False,
        business_name="Ravi Fresh Produce",
        gst_number="27ABCDE1234F1Z5",
        apmc_region="Mumbai APMC"
    )

    response = await client.post(
        "/api/wholesaler/auth/kyc/account",
        json={"wholesaler_id": str(wholesaler.id), "upi_id": "ravi@okaxis"}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Upload KYC documents first"


async def test_account_rejects_upi_and_bank_together(client, make_wholesaler):
    wholesaler = await make_wholesaler(has_shop_detail=False)

    response = await client.post("/api/wholesaler/auth/kyc/account", json={
        "wholesaler_id": str(wholesaler.id),
        "upi_id": "ravi@okaxis",
        "account_holder_name": "Ravi Kumar",
        "account_number": "123456789012",
        "ifsc_code": "HDFC0001234",
        "bank_name": "HDFC Bank",
    })

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationFailed"


async def test_account_rejects_missing_payout_details(client, make_wholesaler):
    wholesaler = await make_wholesaler(has_shop_detail=False)

    response = await client.post("/api/wholesaler/auth/kyc/account", json={"wholesaler_id": str(wholesaler.id)})

    assert response.status_code == 400


async def test_gst_number_must_be_unique(client, make_wholesaler):
    await make_wholesaler(phone_number="9800000002", gst_number="27ABCDE1234F1Z5")
    wholesaler = await make_wholesaler(phone_number="9800000001", has_shop_detail=False)

    response = await client.post("/api/wholesaler/auth/kyc/profile", json=kyc_profile_payload(wholesaler.id))

    assert response.status_code == 400
    assert response.json()["message"] == "GST number already exists"


async def test_invalid_gst_number_is_rejected(client, make_wholesaler):
    wholesaler = await make_wholesaler(has_shop_detail=False)

    response = await client.post(
        "/api/wholesaler/auth/kyc/profile",
        json=kyc_profile_payload(wholesaler.id, gst_number="GST123")
    )

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationFailed"


async def test_kyc_for_unknown_wholesaler(client):
    response = await client.post("/api/wholesaler/auth/kyc/profile", json=kyc_profile_payload(uuid.uuid4()))

    assert response.status_code == 404


async def test_rejected_kyc_can_be_resubmitted(client, session_factory, make_wholesaler):
    wholesaler = await make_wholesaler(
        kyc_status="Rejected",
        verified=False,
        business_name="Ravi Fresh Produce",
        gst_number="27ABCDE1234F1Z5",
        apmc_region="Mumbai APMC",
        business_certificate="https://cdn.test/certificate.pdf",
        id_proof="https://cdn.test/id.png",
        upi_id="ravi@okaxis"
    )

    response = await client.post(
        "/api/wholesaler/auth/kyc/account",
        json={"wholesaler_id": str(wholesaler.id), "upi_id": "ravi.new@okhdfc"}
    )

    assert response.status_code == 201
    _, profile = await load_state(session_factory, wholesaler.id)
    assert profile.kyc_status == "Pending"
    assert profile.upi_id == "ravi.new@okhdfc"


@pytest.mark.parametrize("upi_id", ["ravi.produce@okaxis", "ravi_kumar-99@ybl"])
def test_upi_id_accepts_handle_formats(upi_id):
    request = KycAccountRequest(wholesaler_id=uuid.uuid4(), upi_id=upi_id)
    assert request.upi_id == upi_id


@pytest.mark.parametrize("upi_id", ["r@okaxis", "ravi@ok1", "ravi produce@okaxis", "ravi@"])
def test_upi_id_rejects_malformed_handles(upi_id):
    with pytest.raises(ValidationError):
        KycAccountRequest(wholesaler_id=uuid.uuid4(), upi_id=upi_id)
