import pytest
from sqlalchemy import select

from ghorer_khabar.models import Notification, NotificationType, OrderStatus
from ghorer_khabar.services.notifications import MockNotificationService, normalize_phone
from ghorer_khabar.services.notifications.inbox import (
    mark_all_read,
    notify_admins,
    notify_new_order,
    notify_order_status_change,
)


async def test_order_confirmation_is_sent_by_sms_and_email(notifier):
    result = await notifier.send_order_confirmation(
        order_id=17,
        customer_name="Sadia",
        customer_email="sadia@example.com",
        customer_phone="+8801811000001",
        kitchen_name="Ammu's Kitchen",
        items=[{"name": "Chicken Rezala", "quantity": 2, "price": 300}],
        total_amount=635,
        delivery_date="2026-03-02",
        delivery_slot="Lunch",
    )

    assert result.success
    channels = {m["channel"] for m in notifier.outbox}
    assert channels == {"sms", "email"}
    email = next(m for m in notifier.outbox if m["channel"] == "email")
    assert email["subject"].startswith("Order #17 placed")
    assert "Chicken Rezala" in email["body"]


async def test_order_confirmation_without_contact_details(notifier):
    result = await notifier.send_order_confirmation(
        order_id=1,
        customer_name=None,
        customer_email=None,
        customer_phone=None,
        kitchen_name="Ammu's Kitchen",
        items=[],
        total_amount=100,
    )

    assert not result.success
    assert notifier.outbox == []


async def test_failed_email_is_reported():
    service = MockNotificationService(failure_rate=1.0, min_latency=0, max_latency=0)

    result = await service.send_kitchen_verified("chef@example.com", "Rokeya", "Ammu's Kitchen")

    assert not result.success


async def test_inbox_entries(factory, db):
    kitchen = await factory.kitchen()
    buyer = await factory.user()

    notify_admins(db, "New Kitchen Application", "Ammu's Kitchen submitted onboarding details")
    notify_new_order(db, kitchen.id, 5, "Sadia", 1250)
    notify_order_status_change(db, buyer.id, 5, OrderStatus.DELIVERING)
    assert notify_order_status_change(db, buyer.id, 5, OrderStatus.PENDING) is None
    await db.commit()

    rows = (await db.execute(select(Notification).order_by(Notification.id))).scalars().all()
    admin, kitchen_note, buyer_note = rows
    assert (admin.user_id, admin.kitchen_id) == (None, None)
    assert kitchen_note.kitchen_id == kitchen.id
    assert kitchen_note.message == "New order #5 from Sadia for ৳1,250"
    assert buyer_note.user_id == buyer.id
    assert buyer_note.title == "Order Delivering"
    assert buyer_note.type == NotificationType.INFO


async def test_mark_all_read_only_touches_admin_feed(factory, db):
    buyer = await factory.user()
    notify_admins(db, "A", "first")
    notify_admins(db, "B", "second")
    notify_order_status_change(db, buyer.id, 1, OrderStatus.CONFIRMED)
    await db.commit()

    updated = await mark_all_read(db, admin=True)

    assert updated == 2
    unread = (await db.execute(select(Notification).where(Notification.is_read.is_(False)))).scalars().all()
    assert [n.user_id for n in unread] == [buyer.id]


@pytest.mark.parametrize("raw, expected", [
    ("01711000001", "+8801711000001"),
    ("01711-000 001", "+8801711000001"),
    ("8801911000001", "+8801911000001"),
    ("+8801511000001", "+8801511000001"),
    ("01211000001", None),
    ("+14155550100", None),
    ("", None),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


async def test_local_numbers_are_texted_in_international_form(notifier):
    await notifier.send_order_confirmation(
        order_id=3,
        customer_name="Rafiq",
        customer_email=None,
        customer_phone="01711000001",
        kitchen_name="Ammu's Kitchen",
        items=[],
        total_amount=335,
    )

    [sms] = notifier.messages_to("+8801711000001")
    assert sms["channel"] == "sms"
    assert "#3" in sms["body"]


async def test_unusable_phone_falls_back_to_email(notifier):
    result = await notifier.send_order_confirmation(
        order_id=4,
        customer_name="Rafiq",
        customer_email="rafiq@example.com",
        customer_phone="12345",
        kitchen_name="Ammu's Kitchen",
        items=[],
        total_amount=335,
    )

    assert result.success
    assert [m["channel"] for m in notifier.outbox] == ["email"]
    assert notifier.outbox[0]["category"] == "order_confirmation"
