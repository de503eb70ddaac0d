import httpx

from ghorer_khabar.services.recommendations import (
    FALLBACK_ALGORITHM,
    HttpRecommendationClient,
    RecommendationKind,
    recommend,
)

from conftest import auth_headers


def ml_client(handler) -> HttpRecommendationClient:
    return HttpRecommendationClient(
        base_url="http://ml.test",
        api_key="secret-key",
        timeout=2,
        transport=httpx.MockTransport(handler),
    )


async def popular_menu(factory):
    kitchen = await factory.kitchen()
    top = await factory.menu_item(kitchen, name="Shorshe Ilish", price=550)
    plain = await factory.menu_item(kitchen, name="Dal Tadka", price=120)
    top.rating, top.review_count = 4.8, 12
    plain.rating, plain.review_count = 3.9, 4

    hidden = await factory.kitchen(active=False)
    unseen = await factory.menu_item(hidden, name="Hidden Biryani")
    unseen.rating = 5.0
    await factory.db.commit()
    return kitchen, top, plain


async def test_fallback_without_ml_service(factory, db):
    kitchen, top, plain = await popular_menu(factory)

    payload = await recommend(db, RecommendationKind.DISHES, "7", None)

    assert payload["user_id"] == "7"
    assert payload["metadata"]["algorithm"] == FALLBACK_ALGORITHM
    assert payload["metadata"]["cold_start"] is True
    assert [r["item_id"] for r in payload["recommendations"]] == [top.id, plain.id]
    assert payload["recommendations"][0]["kitchen_name"] == kitchen.name
    assert payload["recommendations"][0]["score"] == 0.96


async def test_fallback_respects_exclusions(factory, db):
    _, top, plain = await popular_menu(factory)

    payload = await recommend(db, RecommendationKind.DISHES, "7", None, exclude_ids=[top.id])

    assert [r["item_id"] for r in payload["recommendations"]] == [plain.id]


async def test_ml_results_are_passed_through(db):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["key"] = request.headers.get("X-API-Key")
        seen["limit"] = request.url.params.get("limit")
        return httpx.Response(200, json={
            "recommendations": [{"item_id": 42, "score": 0.91}],
            "metadata": {"algorithm": "hybrid"},
        })

    payload = await recommend(db, RecommendationKind.KITCHENS, "7", ml_client(handler), limit=3)

    assert seen == {"path": "/api/v1/recommendations/kitchens/7", "key": "secret-key", "limit": "3"}
    assert payload["recommendations"] == [{"item_id": 42, "score": 0.91}]
    assert payload["metadata"] == {"algorithm": "hybrid"}


async def test_ml_error_falls_back(factory, db):
    await popular_menu(factory)
    client = ml_client(lambda request: httpx.Response(503, text="overloaded"))

    payload = await recommend(db, RecommendationKind.DISHES, "7", client)

    assert payload["metadata"]["algorithm"] == FALLBACK_ALGORITHM
    assert "ML service error 503" in payload["metadata"]["note"]
    assert len(payload["recommendations"]) == 2


async def test_empty_ml_results_fall_back(db):
    client = ml_client(lambda request: httpx.Response(200, json={"recommendations": []}))

    payload = await recommend(db, RecommendationKind.SUBSCRIPTIONS, "7", client)

    assert payload["metadata"]["algorithm"] == FALLBACK_ALGORITHM
    assert payload["recommendations"] == []


async def test_unreachable_ml_service_falls_back(db):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    payload = await recommend(db, RecommendationKind.DISHES, "7", ml_client(handler))

    assert payload["metadata"]["note"].startswith("ML service unavailable")


async def test_recommendations_endpoint(client, factory):
    await popular_menu(factory)
    buyer = await factory.user()
    other = await factory.user()

    response = await client.get(f"/api/recommendations/dishes/{buyer.id}", headers=auth_headers(buyer))
    assert response.status_code == 200
    assert response.json()["metadata"]["algorithm"] == FALLBACK_ALGORITHM

    response = await client.get(f"/api/recommendations/dishes/{other.id}", headers=auth_headers(buyer))
    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Forbidden"}
