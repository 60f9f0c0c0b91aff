import json

import pytest

from talenthunt.config import Settings
from talenthunt.models.contestant import Contestant
from talenthunt.services.payment_service import SIGNATURE_HEADER, compute_signature

from conftest import auth_headers, make_user

SECRET = "test-webhook-secret"


def post_webhook(client, payload, secret=SECRET):
    body = json.dumps(payload).encode()
    return client.post(
        "/payments/webhook",
        content=body,
        headers={SIGNATURE_HEADER: compute_signature(body, secret), "Content-Type": "application/json"},
    )


def charge_success(reference, amount):
    return {"event": "charge.success", "data": {"reference": reference, "status": "success", "amount": amount}}


@pytest.fixture
def contestant(db):
    contestant = Contestant(
        registration_id="reg-1",
        contestant_number="CNT-001",
        first_name="Osas",
        last_name="Igbinedion",
        email="osas@example.com",
        talent_category="Dancing",
    )
    db.add(contestant)
    db.commit()
    db.refresh(contestant)
    return contestant


def test_root_and_health(client):
    assert client.get("/").status_code == 200
    response = client.get("/health/")
    assert response.status_code == 200
    assert response.json()["database"]["status"] == "connected"
    assert response.headers["Cache-Control"].startswith("no-cache")
    assert client.get("/health/ping").json()["status"] == "pong"


def test_signup_flow(client, dispatcher):
    response = client.post("/auth/register", json={"firstName": "Ada", "lastName": "Obi", "email": "ada@example.com"})
    assert response.status_code == 201
    code = dispatcher.last_code("ada@example.com")
    assert code is not None

    bad = client.post("/auth/verify-otp", json={"email": "ada@example.com", "otp": "0000" if code != "0000" else "1111"})
    assert bad.status_code == 400

    assert client.post("/auth/verify-otp", json={"email": "ada@example.com", "otp": code}).status_code == 200
    response = client.post("/auth/set-password", json={"email": "ada@example.com", "password": "Password123"})
    token = response.json()["data"]["token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["data"]["user"]["is_email_verified"] is True

    login = client.post("/auth/login", json={"email": "ada@example.com", "password": "nope-nope"})
    assert login.status_code == 401


def test_forgot_password_is_generic(client, user):
    unknown = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})
    known = client.post("/auth/forgot-password", json={"email": user.email})
    assert unknown.status_code == known.status_code == 200
    assert unknown.json()["message"] == known.json()["message"]


def test_protected_routes_need_a_token(client):
    assert client.get("/registrations/").status_code in (401, 403)


def test_registration_steps_over_http(client, user):
    headers = auth_headers(user)
    created = client.post("/registrations/", json={"registrationType": "individual"}, headers=headers)
    assert created.status_code == 201
    registration_id = created.json()["data"]["id"]

    bad = client.put(f"/registrations/{registration_id}/steps/1", json={"gender": "Robot"}, headers=headers)
    assert bad.status_code == 400

    not_here = client.put(f"/registrations/{registration_id}/steps/8", json={}, headers=headers)
    assert not_here.status_code == 400

    saved = client.put(
        f"/registrations/{registration_id}/steps/2",
        json={"talentCategory": "Singing", "skillLevel": "Beginner"},
        headers=headers,
    )
    assert saved.status_code == 200
    assert 2 in saved.json()["data"]["completed_steps"]
    assert saved.json()["data"]["payment_missing"] is True

    upload = client.post(
        f"/registrations/{registration_id}/media",
        files={"profilePhoto": ("me.png", b"\x89PNG", "image/png")},
        headers=headers,
    )
    assert upload.status_code == 200
    assert 5 in upload.json()["data"]["completed_steps"]

    submit = client.post(f"/registrations/{registration_id}/submit", headers=headers)
    assert submit.status_code == 400


def test_other_users_registration_is_hidden(client, db, user):
    created = client.post("/registrations/", json={"registrationType": "individual"}, headers=auth_headers(user))
    registration_id = created.json()["data"]["id"]
    stranger = make_user(db, email="stranger@example.com")
    response = client.get(f"/registrations/{registration_id}", headers=auth_headers(stranger))
    assert response.status_code in (403, 404)


def test_registration_payment_via_webhook(client, user):
    headers = auth_headers(user)
    registration_id = client.post("/registrations/", json={"registrationType": "individual"}, headers=headers).json()["data"]["id"]
    intent = client.post(f"/registrations/{registration_id}/payment/initialize", headers=headers).json()["data"]
    assert intent["reference"].startswith("ETH")

    first = post_webhook(client, charge_success(intent["reference"], intent["amount"]))
    assert first.status_code == 200
    assert first.json()["data"]["applied"] is True

    replay = post_webhook(client, charge_success(intent["reference"], intent["amount"]))
    assert replay.status_code == 200
    assert replay.json()["data"]["replayed"] is True

    status = client.get(f"/registrations/{registration_id}/payment", headers=headers).json()["data"]
    assert status["payment_status"] == "completed"
    assert status["transaction"]["status"] == "successful"


def test_webhook_rejections(client):
    body = json.dumps(charge_success("ETH_X", 1090)).encode()
    unsigned = client.post("/payments/webhook", content=body)
    assert unsigned.status_code == 400

    wrong = post_webhook(client, charge_success("ETH_X", 1090), secret="other")
    assert wrong.status_code == 400

    unknown = post_webhook(client, charge_success("ETH_X", 1090))
    assert unknown.status_code == 404


def test_ambiguous_webhook_is_not_acknowledged(client, user):
    headers = auth_headers(user)
    registration_id = client.post("/registrations/", json={"registrationType": "individual"}, headers=headers).json()["data"]["id"]
    intent = client.post(f"/registrations/{registration_id}/payment/initialize", headers=headers).json()["data"]

    response = post_webhook(client, {"event": "charge.pending", "data": {"reference": intent["reference"], "status": "pending"}})
    assert response.status_code == 502
    assert client.get(f"/payments/{intent['reference']}").json()["data"]["status"] == "pending"


def test_verify_endpoint_uses_body_when_gateway_lookup_is_off(client, user):
    headers = auth_headers(user)
    registration_id = client.post("/registrations/", json={"registrationType": "individual"}, headers=headers).json()["data"]["id"]
    intent = client.post(f"/registrations/{registration_id}/payment/initialize", headers=headers).json()["data"]

    assert client.post(f"/payments/verify/{intent['reference']}").status_code == 400
    response = client.post(
        f"/payments/verify/{intent['reference']}",
        json={"reference": intent["reference"], "status": "failed", "gateway_response": "Declined"},
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Payment failed"


def test_verify_body_cannot_create_vote_intents(client, contestant):
    payload = {
        "reference": "FORGED",
        "status": "success",
        "amount": 1000,
        "metadata": {"type": "vote_payment", "contestantId": contestant.id, "votesPurchased": 10, "amountPaid": 1000},
    }
    response = client.post("/payments/verify/FORGED", json=payload)
    assert response.status_code == 404
    assert client.get("/contestants/tally").json()["data"][0]["total_votes"] == 0


def test_gateway_lookup_is_on_by_default():
    assert Settings.model_fields["PAYMENT_VERIFY_WITH_GATEWAY"].default is True


def test_vote_over_http(client, contestant):
    response = client.post(
        f"/contestants/{contestant.id}/votes",
        json={"numberOfVotes": 10, "amountPaid": 1000, "paymentReference": "V1", "voterInfo": {"name": "Fan"}},
    )
    assert response.status_code == 201

    for _ in range(2):
        assert post_webhook(client, charge_success("V1", 1000)).status_code == 200

    tally = client.get("/contestants/tally").json()["data"]
    assert tally[0]["total_votes"] == 10
    votes = client.get(f"/contestants/{contestant.id}/votes").json()["data"]
    assert votes["totals"]["total_votes"] == 10
    assert votes["pagination"]["total"] == 1

    assert client.post(f"/contestants/{contestant.id}/votes", json={"numberOfVotes": 1, "amountPaid": 0}).status_code == 422


def test_ticket_purchase_is_delivered_after_payment(client, admin, dispatcher):
    created = client.post(
        "/tickets/",
        json={"ticketType": "regular", "name": "Regular", "price": 5000, "availableQuantity": 10},
        headers=auth_headers(admin),
    )
    assert created.status_code == 201

    purchase = client.post(
        "/tickets/purchase",
        json={
            "firstName": "Efe",
            "lastName": "Osa",
            "email": "efe@example.com",
            "tickets": [{"ticketType": "regular", "quantity": 2}],
        },
    )
    assert purchase.status_code == 201
    payment = purchase.json()["data"]["payment"]
    assert payment["amount"] == 10000

    assert post_webhook(client, charge_success(payment["reference"], 10000)).status_code == 200
    delivered = [m for m in dispatcher.sent if m["kind"] == "tickets"]
    assert len(delivered) == 1
    assert len(delivered[0]["tickets"]) == 2

    stored = client.get(f"/tickets/purchase/{payment['reference']}").json()["data"]
    assert stored["ticket_sent"] is True


def test_refund_is_admin_only(client, db, user, admin, contestant):
    client.post(f"/contestants/{contestant.id}/votes", json={"numberOfVotes": 2, "amountPaid": 200, "paymentReference": "V2"})
    post_webhook(client, charge_success("V2", 200))

    assert client.post("/payments/V2/refund", json={}, headers=auth_headers(user)).status_code == 403
    refunded = client.post("/payments/V2/refund", json={"reason": "chargeback"}, headers=auth_headers(admin))
    assert refunded.status_code == 200
    assert refunded.json()["data"]["status"] == "refunded"

    audit = client.get(f"/contestants/{contestant.id}/audit", headers=auth_headers(admin)).json()["data"]
    assert audit["consistent"] is True
    assert audit["recorded_votes"] == 0


def test_locations(client, admin):
    states = client.get("/locations/states").json()
    assert states["count"] == 2
    assert client.get("/locations/states/edo/lgas").json()["count"] == 2
    assert client.get("/locations/states/Edo/lgas/Oredo").json()["data"]["name"] == "Oredo"
    assert client.get("/locations/states/Kano/lgas").status_code == 404
    assert client.get("/locations/search", params={"q": "ik"}).json()["data"][0]["lga"] == "Ikeja"
    assert client.get("/locations/cache").json()["data"]["is_valid"] is True
    assert client.post("/locations/cache/refresh", headers=auth_headers(admin)).status_code == 200


def test_bulk_pool_over_http(client, user, dispatcher):
    headers = auth_headers(user)
    pool = client.post("/bulk/", json={"totalSlots": 2}, headers=headers).json()["data"]
    assert pool["total_amount"] == 2 * pool["price_per_slot"]

    early = client.post(
        f"/bulk/{pool['id']}/participants",
        json={"firstName": "Guest", "lastName": "One", "email": "guest1@example.com"},
        headers=headers,
    )
    assert early.status_code == 409

    intent = client.post(f"/bulk/{pool['id']}/payment/initialize", headers=headers).json()["data"]
    assert intent["reference"].startswith("ETH_BULK")
    assert post_webhook(client, charge_success(intent["reference"], intent["amount"])).status_code == 200

    for i in (1, 2):
        added = client.post(
            f"/bulk/{pool['id']}/participants",
            json={"firstName": "Guest", "lastName": str(i), "email": f"guest{i}@example.com"},
            headers=headers,
        )
        assert added.status_code == 201
    assert added.json()["data"]["pool_status"] == "completed"
    assert added.json()["data"]["available_slots"] == 0

    full = client.post(
        f"/bulk/{pool['id']}/participants",
        json={"firstName": "Guest", "lastName": "Three", "email": "guest3@example.com"},
        headers=headers,
    )
    assert full.status_code == 409

    status = client.get("/bulk/participants/status", params={"email": "guest1@example.com"}).json()["data"]
    assert status["participant"]["invitation_status"] == "sent"
    detail = client.get(f"/bulk/{pool['id']}", headers=headers).json()["data"]
    assert detail["used_slots"] == 2
