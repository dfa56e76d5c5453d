import pytest
import stripe

pytestmark = pytest.mark.integration


def completed_checkout(user_id):
    return {
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_test_1", "metadata": {"userId": str(user_id)}}},
    }


@pytest.fixture()
def stripe_calls(monkeypatch):
    """Record Stripe API calls instead of sending them."""
    calls = {"customers": [], "sessions": []}

    def create_customer(**kwargs):
        calls["customers"].append(kwargs)
        return {"id": f"cus_{len(calls['customers'])}"}

    def create_session(**kwargs):
        calls["sessions"].append(kwargs)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    monkeypatch.setattr(stripe.Customer, "create", create_customer)
    monkeypatch.setattr(stripe.checkout.Session, "create", create_session)
    return calls


def accept_signature(monkeypatch, event):
    monkeypatch.setattr(stripe.Webhook, "construct_event", lambda payload, sig, secret: event)


def test_status_defaults_to_free(user_client):
    response = user_client.get("/api/subscriptions/status")

    assert response.status_code == 200
    assert response.json() == {"isSubscribed": False, "subscriptionExpiry": None}


def test_status_requires_login(client):
    assert client.get("/api/subscriptions/status").status_code == 401


def test_checkout_creates_customer_once(user_client, stripe_calls):
    first = user_client.post("/api/subscriptions/create-checkout")
    second = user_client.post("/api/subscriptions/create-checkout")

    assert first.status_code == 200
    assert first.json() == {"url": "https://checkout.stripe.test/cs_test_1"}
    assert second.status_code == 200
    assert len(stripe_calls["customers"]) == 1
    assert [s["customer"] for s in stripe_calls["sessions"]] == ["cus_1", "cus_1"]

    session = stripe_calls["sessions"][0]
    assert session["mode"] == "payment"
    assert session["line_items"][0]["price_data"]["unit_amount"] == 300
    assert session["success_url"].endswith("/subscription-success")


def test_checkout_stripe_failure_is_502(user_client, monkeypatch):
    def fail(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.Customer, "create", fail)

    assert user_client.post("/api/subscriptions/create-checkout").status_code == 502


def test_webhook_requires_signature(client):
    response = client.post("/api/subscriptions/webhook", content=b"{}")

    assert response.status_code == 400


def test_webhook_rejects_bad_signature(client, monkeypatch):
    def reject(payload, sig, secret):
        raise stripe.SignatureVerificationError("bad signature", sig)

    monkeypatch.setattr(stripe.Webhook, "construct_event", reject)

    response = client.post(
        "/api/subscriptions/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=bad"}
    )

    assert response.status_code == 400


def test_completed_checkout_unlocks_premium(user_client, client, monkeypatch):
    user_id = user_client.get("/api/auth/user").json()["id"]
    assert user_client.get("/api/insights").status_code == 403
    accept_signature(monkeypatch, completed_checkout(user_id))

    response = client.post(
        "/api/subscriptions/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=ok"}
    )

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert user_client.get("/api/subscriptions/status").json()["isSubscribed"] is True
    assert user_client.get("/api/auth/user").json()["isSubscribed"] is True

    insights = user_client.get("/api/insights")
    assert insights.status_code == 200
    assert insights.json()["themeCounts"] == {}
    assert insights.json()["insights"][0]["derivedEntryCount"] == 0


def test_premium_insights_count_themes(user_client, client, monkeypatch):
    user_id = user_client.get("/api/auth/user").json()["id"]
    accept_signature(monkeypatch, completed_checkout(user_id))
    client.post("/api/subscriptions/webhook", content=b"{}", headers={"stripe-signature": "ok"})
    user_client.post("/api/entries", json={"title": "a", "content": "Long day at work, another meeting."})
    user_client.post("/api/entries", json={"title": "b", "content": "My job keeps me busy."})

    body = user_client.get("/api/insights").json()

    assert body["themeCounts"]["Work"] == 2


def test_other_events_are_acknowledged(client, monkeypatch):
    accept_signature(monkeypatch, {"type": "payment_intent.created", "data": {"object": {}}})

    response = client.post(
        "/api/subscriptions/webhook", content=b"{}", headers={"stripe-signature": "ok"}
    )

    assert response.json() == {"received": True}
