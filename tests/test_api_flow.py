"""A kitchen from onboarding to its first reviewed order."""

from ghorer_khabar.models import OrderStatus, User, UserRole

from conftest import KITCHEN_POINT, NEARBY_POINT, auth_headers, tomorrow

DISH = {
    "name": "Chicken Rezala",
    "category": "Curry",
    "price": 300,
    "prep_time": 45,
    "images": ["https://img.example.com/rezala.jpg"],
    "ingredients": [{"name": "Chicken", "quantity": 0.25, "unit": "kg"}],
}


async def onboard_kitchen(client, seller, admin) -> int:
    response = await client.post("/api/chef/onboarding", headers=auth_headers(seller), json={
        "kitchen_name": "Ammu's Kitchen",
        "address": "Road 27, Dhanmondi",
        "zone": "Dhanmondi",
        "latitude": KITCHEN_POINT[0],
        "longitude": KITCHEN_POINT[1],
        "phone": "+8801711000001",
        "nid_name": seller.name,
        "nid_front_image": "https://img.example.com/nid-front.jpg",
        "nid_back_image": "https://img.example.com/nid-back.jpg",
    })
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["state"] == "PENDING"
    kitchen_id = body["kitchen_id"]

    for action, state in (("verify", "VERIFIED"), ("activate", "ACTIVE")):
        response = await client.patch(
            f"/api/admin/kitchens/{kitchen_id}", headers=auth_headers(admin), json={"action": action}
        )
        assert response.status_code == 200, response.text
        assert response.json()["state"] == state

    return kitchen_id


async def test_order_lifecycle(client, factory, notifier):
    seller = await factory.user(UserRole.SELLER, name="Rokeya Begum")
    admin = await factory.user(UserRole.ADMIN)
    buyer = await factory.user(name="Sadia Islam", email="sadia@example.com")

    kitchen_id = await onboard_kitchen(client, seller, admin)

    # Admins were told about the application; the seller got a verification email
    feed = await client.get("/api/admin/notifications", headers=auth_headers(admin))
    assert [n["title"] for n in feed.json()] == ["New Kitchen Application"]
    assert any(m["subject"] == "Ammu's Kitchen is verified" for m in notifier.outbox)

    response = await client.post("/api/chef/menu", headers=auth_headers(seller), json=DISH)
    assert response.status_code == 201, response.text
    dish = response.json()
    assert dish["images"] == DISH["images"]

    response = await client.post("/api/addresses", headers=auth_headers(buyer), json={
        "label": "Home",
        "address": "Road 4, Dhanmondi",
        "latitude": NEARBY_POINT[0],
        "longitude": NEARBY_POINT[1],
    })
    assert response.status_code == 201
    address = response.json()
    assert address["is_default"] is True

    response = await client.get(
        "/api/orders/calculate-delivery",
        params={"kitchen_id": kitchen_id, "address_id": address["id"]},
        headers=auth_headers(buyer),
    )
    quote = response.json()
    assert quote["available"] is True
    assert quote["charge"] == 15

    response = await client.get(
        "/api/orders/available-slots",
        params={"kitchen_id": kitchen_id, "date": tomorrow().isoformat(), "menu_item_ids": str(dish["id"])},
    )
    slots = {s["slot"]: s for s in response.json()["slots"]}
    assert slots["DINNER"]["available"] is True

    response = await client.post("/api/orders", headers=auth_headers(buyer), json={
        "items": [
            {"menu_item_id": dish["id"], "quantity": 1},
            {"menu_item_id": dish["id"], "quantity": 1},
        ],
        "delivery_address_id": address["id"],
        "delivery_date": tomorrow().isoformat(),
        "delivery_time_slot": "DINNER",
    })
    assert response.status_code == 201, response.text
    order = response.json()
    assert order["status"] == "PENDING"
    assert order["items"][0]["quantity"] == 2
    assert (order["subtotal"], order["delivery_fee"], order["platform_fee"], order["total"]) == (600, 15, 10, 625)
    assert any(m["subject"].startswith(f"Order #{order['id']} placed") for m in notifier.outbox)

    # Not reviewable yet
    response = await client.post("/api/reviews", headers=auth_headers(buyer), json={
        "menu_item_id": dish["id"], "order_id": order["id"], "rating": 5,
    })
    assert response.status_code == 400
    assert response.json()["error"] == "You can only review items from completed orders"

    response = await client.patch(
        f"/api/chef/orders/{order['id']}/status", headers=auth_headers(seller), json={"status": "COMPLETED"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid status transition from PENDING to COMPLETED"

    for status in ("CONFIRMED", "PREPARING", "DELIVERING", "COMPLETED"):
        response = await client.patch(
            f"/api/chef/orders/{order['id']}/status", headers=auth_headers(seller), json={"status": status}
        )
        assert response.status_code == 200, response.text
    assert response.json()["completed_at"] is not None

    response = await client.get("/api/reviews/check-eligibility", params={"menu_item_id": dish["id"]},
                                headers=auth_headers(buyer))
    assert response.json() == {"eligible": True, "order_id": order["id"], "reason": None}

    review = {"menu_item_id": dish["id"], "order_id": order["id"], "rating": 4, "comment": "Just like home"}
    response = await client.post("/api/reviews", headers=auth_headers(buyer), json=review)
    assert response.status_code == 201, response.text

    response = await client.post("/api/reviews", headers=auth_headers(buyer), json=review)
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "You have already reviewed this item"}

    listing = (await client.get("/api/reviews", params={"menu_item_id": dish["id"]})).json()
    assert (listing["average_rating"], listing["review_count"]) == (4.0, 1)

    kitchen = (await client.get(f"/api/kitchens/{kitchen_id}")).json()
    assert kitchen["total_orders"] == 1
    assert kitchen["rating"] == 4.0
    assert kitchen["kri_score"] >= 50

    inbox = (await client.get("/api/orders", headers=auth_headers(buyer))).json()
    assert inbox["total"] == 1


async def test_checkout_rejects_mixed_kitchens(client, factory):
    first = await factory.kitchen()
    second = await factory.kitchen()
    a = await factory.menu_item(first)
    b = await factory.menu_item(second)
    buyer = await factory.user()
    address = await factory.address(buyer)

    response = await client.post("/api/orders", headers=auth_headers(buyer), json={
        "items": [{"menu_item_id": a.id, "quantity": 1}, {"menu_item_id": b.id, "quantity": 1}],
        "delivery_address_id": address.id,
        "delivery_date": tomorrow().isoformat(),
        "delivery_time_slot": "LUNCH",
    })

    assert response.status_code == 400
    assert response.json()["error"] == "All items must be from the same kitchen"


async def test_checkout_rejects_addresses_out_of_range(client, factory):
    kitchen = await factory.kitchen()
    dish = await factory.menu_item(kitchen)
    buyer = await factory.user()
    address = await factory.address(buyer, point=(23.8759, 90.3795))

    response = await client.post("/api/orders", headers=auth_headers(buyer), json={
        "items": [{"menu_item_id": dish.id, "quantity": 1}],
        "delivery_address_id": address.id,
        "delivery_date": tomorrow().isoformat(),
        "delivery_time_slot": "LUNCH",
    })

    assert response.status_code == 400
    assert "not available for distances greater than 7 km" in response.json()["error"]


async def test_checkout_unknown_items(client, factory):
    buyer = await factory.user()
    address = await factory.address(buyer)

    response = await client.post("/api/orders", headers=auth_headers(buyer), json={
        "items": [{"menu_item_id": 404, "quantity": 1}],
        "delivery_address_id": address.id,
        "delivery_date": tomorrow().isoformat(),
        "delivery_time_slot": "LUNCH",
    })

    assert response.status_code == 404
    assert response.json()["error"] == "Menu items not found: [404]"


async def test_closed_kitchen_takes_no_orders(client, factory):
    kitchen = await factory.kitchen(is_open=False)
    dish = await factory.menu_item(kitchen)
    buyer = await factory.user()
    address = await factory.address(buyer)

    response = await client.post("/api/orders", headers=auth_headers(buyer), json={
        "items": [{"menu_item_id": dish.id, "quantity": 1}],
        "delivery_address_id": address.id,
        "delivery_date": tomorrow().isoformat(),
        "delivery_time_slot": "DINNER",
    })

    assert response.json()["error"] == "Kitchen is currently closed"


async def test_buyer_cancels_before_preparation(client, factory):
    kitchen = await factory.kitchen()
    dish = await factory.menu_item(kitchen)
    buyer = await factory.user()

    pending = await factory.order(buyer, kitchen, [(dish, 1)], status=OrderStatus.PENDING, delivery_date=tomorrow())
    cooking = await factory.order(buyer, kitchen, [(dish, 1)], status=OrderStatus.PREPARING, delivery_date=tomorrow())

    response = await client.post(f"/api/orders/{pending.id}/cancel", headers=auth_headers(buyer))
    assert response.json()["status"] == "CANCELLED"

    response = await client.post(f"/api/orders/{cooking.id}/cancel", headers=auth_headers(buyer))
    assert response.status_code == 400
    assert response.json()["error"] == "Order can no longer be cancelled (status: PREPARING)"


async def test_other_kitchen_cannot_update_order(client, factory):
    kitchen = await factory.kitchen()
    other = await factory.kitchen()
    dish = await factory.menu_item(kitchen)
    buyer = await factory.user()

    order = await factory.order(buyer, kitchen, [(dish, 1)], status=OrderStatus.PENDING, delivery_date=tomorrow())
    seller = await factory.db.get(User, other.seller_id)

    response = await client.patch(
        f"/api/chef/orders/{order.id}/status", headers=auth_headers(seller), json={"status": "CONFIRMED"}
    )
    assert response.status_code == 403


async def test_onboarding_rejects_foreign_phone_numbers(client, factory):
    seller = await factory.user(UserRole.SELLER)

    response = await client.post("/api/chef/onboarding", headers=auth_headers(seller), json={
        "kitchen_name": "Ammu's Kitchen",
        "address": "Road 27, Dhanmondi",
        "phone": "+1 415 555 0100",
        "nid_name": "Rokeya Begum",
        "nid_front_image": "https://img.example.com/nid-front.jpg",
        "nid_back_image": "https://img.example.com/nid-back.jpg",
    })

    assert response.status_code == 400
    assert response.json()["error"] == "Phone must be a Bangladeshi mobile number"

    status = await client.get("/api/chef/onboarding", headers=auth_headers(seller))
    assert status.json()["state"] == "UNSUBMITTED"


async def test_kitchen_order_list_pages_in_the_database(client, factory):
    kitchen = await factory.kitchen()
    dish = await factory.menu_item(kitchen)
    buyer = await factory.user()
    seller = await factory.db.get(User, kitchen.seller_id)

    first = await factory.order(buyer, kitchen, [(dish, 1)], status=OrderStatus.PENDING, delivery_date=tomorrow())
    second = await factory.order(buyer, kitchen, [(dish, 2)], delivery_date=tomorrow())
    await factory.order(buyer, kitchen, [(dish, 3)], status=OrderStatus.PENDING, delivery_date=tomorrow())

    body = (await client.get(
        "/api/chef/orders", headers=auth_headers(seller), params={"skip": 1, "take": 1}
    )).json()
    assert body["total"] == 3
    assert [o["id"] for o in body["orders"]] == [second.id]

    body = (await client.get(
        "/api/chef/orders", headers=auth_headers(seller), params={"status": "pending", "skip": 1}
    )).json()
    assert body["total"] == 2
    assert [o["id"] for o in body["orders"]] == [first.id]
