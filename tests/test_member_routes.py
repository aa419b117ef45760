"""API tests for the member dashboard and route guards."""

from datetime import date, timedelta

from horizon.app.integrations.remote import (
    ADMIN_MESSAGES,
    BALANCE_ADJUSTMENTS,
    CONTRIBUTIONS,
    INITIATE_PAYMENT,
    PROFILES,
)


def _profile(store, user_id):
    return next(p for p in store.rows(PROFILES) if p["user_id"] == user_id)


# ---- guards ------------------------------------------------------------------

def test_anonymous_is_sent_to_login(client):
    resp = client.get("/dashboard")

    assert resp.status_code == 401
    assert resp.json()["detail"] == {"decision": "REDIRECT_TO_LOGIN", "redirect_to": "/login"}


def test_admin_is_sent_to_admin_home(client, admin_headers):
    resp = client.get("/dashboard", headers=admin_headers)

    assert resp.status_code == 403
    assert resp.json()["detail"]["redirect_to"] == "/admin/dashboard"


def test_member_is_kept_out_of_admin_routes(client, member_headers):
    resp = client.get("/admin/members", headers=member_headers)

    assert resp.status_code == 403
    assert resp.json()["detail"] == {"decision": "REDIRECT_TO_MEMBER_HOME", "redirect_to": "/dashboard"}


def test_revoked_token_is_anonymous(client, store, member_headers):
    store.tokens.clear()

    assert client.get("/dashboard", headers=member_headers).status_code == 401


# ---- dashboard -----------------------------------------------------------------

def test_dashboard_for_new_member(client, member_headers):
    body = client.get("/dashboard", headers=member_headers).json()

    assert body["contributions"] == []
    assert body["effective_balance"] == 0
    assert body["missed_days"] == 0
    assert body["daily_amount"] == 100.0
    assert body["contributed_today"] is False


def test_contribute_today_then_duplicate(client, store, member_headers, member_id):
    first = client.post("/dashboard/contributions", headers=member_headers)
    second = client.post("/dashboard/contributions", headers=member_headers)

    assert first.status_code == 201
    assert first.json()["contribution_date"] == date.today().isoformat()
    assert second.status_code == 422
    assert len(store.rows(CONTRIBUTIONS)) == 1

    body = client.get("/dashboard", headers=member_headers).json()
    assert body["contributed_today"] is True
    assert body["effective_balance"] == 100.0


def test_backfill_and_future_dates(client, member_headers):
    past = (date.today() - timedelta(days=3)).isoformat()
    future = (date.today() + timedelta(days=1)).isoformat()

    assert client.post(f"/dashboard/contributions/{past}", headers=member_headers).status_code == 201
    resp = client.post(f"/dashboard/contributions/{future}", headers=member_headers)

    assert resp.status_code == 422
    assert resp.json()["fields"] == {"contribution_date": "You cannot contribute for future dates."}


def test_missed_days_after_backfill(client, member_headers):
    start = (date.today() - timedelta(days=5)).isoformat()
    client.post(f"/dashboard/contributions/{start}", headers=member_headers)

    # 5 days up to yesterday, one contribution
    assert client.get("/dashboard", headers=member_headers).json()["missed_days"] == 4


def test_hidden_balance(client, store, member_headers, member_id):
    _profile(store, member_id)["balance_visible"] = False
    store.tables[BALANCE_ADJUSTMENTS]["adj"] = {
        "id": "adj", "user_id": member_id, "admin_id": "a", "amount": 50, "adjustment_type": "add",
    }

    body = client.get("/dashboard", headers=member_headers).json()

    assert body["effective_balance"] is None


def test_mark_own_message_read(client, store, member_headers, member_id):
    store.tables[ADMIN_MESSAGES]["m1"] = {
        "id": "m1", "user_id": member_id, "admin_id": "a", "message": "hi", "message_type": "info", "is_read": False,
    }
    store.tables[ADMIN_MESSAGES]["m2"] = {
        "id": "m2", "user_id": "someone-else", "admin_id": "a", "message": "hi", "message_type": "info", "is_read": False,
    }

    assert client.get("/dashboard", headers=member_headers).json()["unread_messages"] == 1
    assert client.post("/dashboard/messages/m1/read", headers=member_headers).status_code == 204
    assert client.post("/dashboard/messages/m2/read", headers=member_headers).status_code == 404
    assert store.tables[ADMIN_MESSAGES]["m1"]["is_read"] is True
    assert store.tables[ADMIN_MESSAGES]["m2"]["is_read"] is False


def test_payment_uses_daily_amount(client, store, member_headers, member_id):
    store.function_results[INITIATE_PAYMENT] = {"success": True, "reference": "HUG-REF", "message": "ok"}

    resp = client.post("/dashboard/payments", json={}, headers=member_headers)

    assert resp.status_code == 200
    assert resp.json()["reference"] == "HUG-REF"
    [(name, body)] = store.function_calls
    assert name == INITIATE_PAYMENT
    assert body == {"userId": member_id, "amount": 100.0, "phoneNumber": "712345678", "userName": "Jane Wanjiku"}


def test_payment_failure_is_bad_gateway(client, store, member_headers):
    store.function_results[INITIATE_PAYMENT] = {"success": False, "error": "Pesapal credentials not configured"}

    resp = client.post("/dashboard/payments", json={"amount": 200}, headers=member_headers)

    assert resp.status_code == 502
    assert resp.json()["detail"] == "Pesapal credentials not configured"


def test_tips(client):
    tip = client.get("/tips", params={"category": "growth"}).json()

    assert tip["category"] == "growth"
    assert client.get("/tips", params={"category": "luck"}).status_code == 422
