from sqlalchemy import func, select

from ghorer_khabar.models import MenuItem, UserRole

from conftest import auth_headers, tomorrow


async def test_root(client):
    body = (await client.get("/")).json()

    assert body["documentation"] == "/docs"
    assert body["health"] == "/health"


async def test_health_without_ml_service(client):
    body = (await client.get("/health")).json()

    assert body["status"] == "operational"
    assert body["database"] == "healthy"
    assert body["recommendation_service"] == "fallback"


async def test_missing_token(client):
    response = await client.get("/api/orders")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Unauthorized"}


async def test_bad_token(client):
    response = await client.get("/api/orders", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or expired token"


async def test_role_checks(client, factory):
    buyer = await factory.user()

    response = await client.get("/api/chef/menu", headers=auth_headers(buyer))
    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Seller access required"}

    response = await client.get("/api/admin/stats", headers=auth_headers(buyer))
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden - Admin access required"


async def test_seller_without_kitchen(client, factory):
    seller = await factory.user(UserRole.SELLER)

    response = await client.get("/api/chef/menu", headers=auth_headers(seller))

    assert response.status_code == 404
    assert response.json()["error"] == "Kitchen not found. Complete onboarding first."


async def test_menu_needs_a_kitchen(client, factory):
    seller = await factory.user(UserRole.SELLER)
    headers = auth_headers(seller)

    response = await client.post("/api/chef/menu", headers=headers, json={
        "name": "Beef Bhuna",
        "price": 350,
        "prep_time": 60,
        "images": ["https://img.example.com/bhuna.jpg"],
        "ingredients": [{"name": "Beef"}],
    })
    assert response.status_code == 404

    response = await client.patch("/api/chef/menu/1", headers=headers, json={"price": 400})
    assert response.status_code == 404

    response = await client.delete("/api/chef/menu/1", headers=headers)
    assert response.json()["error"] == "Kitchen not found. Complete onboarding first."

    count = await factory.db.scalar(select(func.count(MenuItem.id)))
    assert count == 0


async def test_validation_envelope(client, factory):
    buyer = await factory.user()

    response = await client.post("/api/orders", headers=auth_headers(buyer), json={
        "items": [{"menu_item_id": 1, "quantity": 0}],
        "delivery_address_id": 1,
        "delivery_date": tomorrow().isoformat(),
        "delivery_time_slot": "LUNCH",
    })

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("items.0.quantity: ")
    assert body["detail"][0]["loc"] == ["body", "items", 0, "quantity"]


async def test_query_validation_envelope(client):
    response = await client.get("/api/kitchens", params={"lat": 200, "lng": 90})

    assert response.status_code == 422
    assert response.json()["error"].startswith("query.lat: ")


async def test_unknown_slot_name(client, factory):
    buyer = await factory.user()

    response = await client.post("/api/orders", headers=auth_headers(buyer), json={
        "items": [{"menu_item_id": 1, "quantity": 1}],
        "delivery_address_id": 1,
        "delivery_date": tomorrow().isoformat(),
        "delivery_time_slot": "MIDNIGHT_SNACK",
    })

    assert response.status_code == 422
    assert response.json()["error"].startswith("delivery_time_slot: ")
