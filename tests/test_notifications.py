"""Tests for SMS templates, best-effort sending and the reminder job."""

import asyncio
from datetime import date

from horizon.app.core.errors import InvokeError
from horizon.app.integrations.remote import CONTRIBUTIONS, PROFILES, SEND_SMS
from horizon.app.services import notifications
from horizon.app.services.reminders import send_missed_day_reminders_once


def test_format_amount():
    assert notifications.format_amount(1500.0) == "1,500"
    assert notifications.format_amount(1500.5) == "1,500.5"
    assert notifications.format_amount(100) == "100"


def test_templates():
    assert notifications.missed_day_text("Jane", 1).startswith("Hi Jane! You have 1 day to catch up on.")
    assert "3 days" in notifications.missed_day_text("Jane", 3)
    assert notifications.balance_adjustment_text("Jane", -200, "deduct") == (
        "Hello Jane, KES 200 has been deducted from your Horizon Unit balance. Check your dashboard for details."
    )
    assert "Admin: Meeting on Friday" in notifications.admin_notification_text("Jane", "Meeting on Friday")


def test_missing_phone_skips_the_call(store, service):
    assert asyncio.run(notifications.send_sms(service, None, "hello")) is False
    assert store.function_calls == []


def test_invoke_failure_returns_false(store, service):
    store.function_results[SEND_SMS] = InvokeError("send-sms failed: timeout")

    assert asyncio.run(notifications.send_sms(service, "0712345678", "hello")) is False


def test_plain_sms_body(store, service):
    assert asyncio.run(notifications.send_sms(service, "0712345678", "hello")) is True
    assert store.function_calls == [(SEND_SMS, {"to": "0712345678", "message": "hello"})]


def test_reminders_go_to_members_with_missed_days(store, service, member_id, admin_id):
    async def setup():
        other = await service.sign_up("799999999@horizonunit.local", "secret1", {"full_name": "No Phone"})
        await service.insert_rows(CONTRIBUTIONS, [
            {"user_id": member_id, "contribution_date": "2024-03-01", "amount": 100},
            {"user_id": member_id, "contribution_date": "2024-03-05", "amount": 100},
            {"user_id": other, "contribution_date": "2024-03-01", "amount": 100},
        ])

    asyncio.run(setup())

    sent = asyncio.run(send_missed_day_reminders_once(service, today=date(2024, 3, 10)))

    assert sent == 1
    [(name, body)] = store.function_calls
    assert body["messageType"] == "missed_contribution"
    assert "7 days" in body["message"]
    profile = next(p for p in store.rows(PROFILES) if p["user_id"] == member_id)
    assert profile["missed_contributions"] == 7
