from datetime import date, datetime, timedelta

from ghorer_khabar.models import OrderStatus, UserRole
from ghorer_khabar.services.kri import KRIInputs, calculate_kri, is_on_time, update_kri_score

from conftest import auth_headers


def test_perfect_established_kitchen_scores_100():
    result = calculate_kri(KRIInputs(
        total_orders=10,
        completed_orders=10,
        on_time_orders=10,
        review_ratings=[5, 5, 5, 5, 5],
        response_time_minutes=0,
    ))

    assert result.kri_score == 100
    assert not result.is_new_chef
    assert result.breakdown == {
        "rating_score": 30,
        "fulfillment_score": 25,
        "delivery_score": 20,
        "response_score": 15,
        "satisfaction_score": 10,
    }


def test_new_chef_blends_toward_base_score():
    result = calculate_kri(KRIInputs(
        total_orders=2,
        completed_orders=2,
        on_time_orders=2,
        review_ratings=[5],
    ))

    assert result.is_new_chef
    assert result.kri_score == 68


def test_new_chef_never_drops_below_base():
    result = calculate_kri(KRIInputs(total_orders=1, cancelled_orders=1))

    assert result.is_new_chef
    assert result.kri_score == 50


def test_cancellations_and_slow_responses_cost_points():
    result = calculate_kri(KRIInputs(
        total_orders=10,
        completed_orders=8,
        cancelled_orders=2,
        on_time_orders=8,
        review_ratings=[4, 4, 4],
        response_time_minutes=120,
    ))

    # 24 + 19 + 20 + 11 + 10
    assert result.kri_score == 84
    assert result.metrics["cancelled_orders"] == 2


def test_on_time_allows_two_hours_past_the_delivery_day():
    day = date(2026, 3, 1)
    assert is_on_time(day, datetime(2026, 3, 1, 21, 30))
    assert is_on_time(day, datetime(2026, 3, 2, 1, 0))
    assert not is_on_time(day, datetime(2026, 3, 2, 3, 0))
    assert not is_on_time(None, datetime(2026, 3, 1, 12, 0))


async def test_update_kri_score_uses_order_history(factory, db):
    kitchen = await factory.kitchen()
    dish = await factory.menu_item(kitchen)
    buyer = await factory.user()
    today = date.today()
    for _ in range(4):
        await factory.order(buyer, kitchen, [(dish, 1)], delivery_date=today - timedelta(days=1))
    await factory.order(buyer, kitchen, [(dish, 1)], status=OrderStatus.CANCELLED)

    result = await update_kri_score(db, kitchen)

    assert result.metrics["total_orders"] == 5
    assert result.metrics["completed_orders"] == 4
    assert result.metrics["on_time_delivery_rate"] == 100
    assert kitchen.kri_score == result.kri_score


async def test_chef_sees_live_breakdown(client, factory):
    seller = await factory.user(UserRole.SELLER)
    kitchen = await factory.kitchen(seller=seller)
    dish = await factory.menu_item(kitchen)
    buyer = await factory.user()
    await factory.order(buyer, kitchen, [(dish, 1)])

    body = (await client.get("/api/chef/kri", headers=auth_headers(seller))).json()

    assert body["kitchen_id"] == kitchen.id
    assert body["is_new_chef"] is True
    assert body["kri_score"] >= 50
    assert set(body["breakdown"]) == {
        "rating_score", "fulfillment_score", "delivery_score", "response_score", "satisfaction_score",
    }
    assert body["metrics"]["completed_orders"] == 1
