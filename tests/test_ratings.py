import pytest
from sqlalchemy.exc import IntegrityError

from ghorer_khabar.models import Review
from ghorer_khabar.services.ratings import refresh_ratings


async def test_dish_and_kitchen_ratings_follow_reviews(factory, db):
    kitchen = await factory.kitchen()
    rezala = await factory.menu_item(kitchen, name="Chicken Rezala")
    doi = await factory.menu_item(kitchen, name="Mishti Doi", price=80)
    buyer = await factory.user()
    order = await factory.order(buyer, kitchen, [(rezala, 1), (doi, 2)])

    rezala_line, doi_line = order.items
    db.add_all([
        Review(user_id=buyer.id, menu_item_id=rezala.id, order_id=order.id, order_item_id=rezala_line.id, rating=4),
        Review(user_id=buyer.id, menu_item_id=doi.id, order_id=order.id, order_item_id=doi_line.id, rating=5),
    ])
    await db.flush()

    await refresh_ratings(db, rezala)
    await refresh_ratings(db, doi)

    assert (rezala.rating, rezala.review_count) == (4.0, 1)
    assert (doi.rating, doi.review_count) == (5.0, 1)
    assert kitchen.rating == 4.5
    assert kitchen.review_count == 2


async def test_one_review_per_purchased_item(factory, db):
    kitchen = await factory.kitchen()
    dish = await factory.menu_item(kitchen)
    buyer = await factory.user()
    order = await factory.order(buyer, kitchen, [(dish, 1)])
    line = order.items[0]

    db.add(Review(user_id=buyer.id, menu_item_id=dish.id, order_id=order.id, order_item_id=line.id, rating=5))
    await db.commit()

    db.add(Review(user_id=buyer.id, menu_item_id=dish.id, order_id=order.id, order_item_id=line.id, rating=1))
    with pytest.raises(IntegrityError):
        await db.flush()
    await db.rollback()
