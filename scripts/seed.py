"""
Demo Data Seeder

Replaces the database contents with demo kitchens, dishes, plans, buyers,
orders and reviews. With --kitchen-id only the signature demo dishes are
added to that kitchen (defaults to TEMP_KITCHEN_ID).
Run from project root: python scripts/seed.py [--seed 42] [--kitchen-id 3]
"""

import argparse
import asyncio
import os
import random
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ghorer_khabar.core.config import get_settings, setup_logging
from ghorer_khabar.database import async_session_maker, engine, init_db
from ghorer_khabar.maintenance.seed import seed_demo_dishes, seed_marketplace


async def seed_all(seed: int, orders_per_buyer: int) -> bool:
    print("=" * 60)
    print("🌱 SEEDING DEMO MARKETPLACE")
    print("=" * 60)

    await init_db()
    async with async_session_maker() as db:
        summary = await seed_marketplace(db, rng=random.Random(seed), orders_per_buyer=orders_per_buyer)
    await engine.dispose()

    print(f"\n📊 SUMMARY:")
    for key, value in summary.to_dict().items():
        print(f"   {key.replace('_', ' ').title()}: {value}")
    print("\n" + "=" * 60)
    print("✅ SEED COMPLETE")
    print("=" * 60)
    return True


async def seed_dishes(kitchen_id: int) -> bool:
    print("=" * 60)
    print(f"🍛 ADDING DEMO DISHES TO KITCHEN #{kitchen_id}")
    print("=" * 60)

    await init_db()
    async with async_session_maker() as db:
        report = await seed_demo_dishes(db, kitchen_id)
    await engine.dispose()

    for message in report.messages:
        print(f"   • {message}")
    print(f"\n✅ Added {report.succeeded} dishes")
    return report.ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--orders-per-buyer", type=int, default=3, help="Historical orders per buyer")
    parser.add_argument("--demo-dishes", action="store_true", help="Only add demo dishes to one kitchen")
    parser.add_argument("--kitchen-id", type=int, default=None, help="Kitchen for --demo-dishes")
    args = parser.parse_args()

    setup_logging()
    if args.demo_dishes or args.kitchen_id is not None:
        kitchen_id = args.kitchen_id or get_settings().temp_kitchen_id
        if kitchen_id is None:
            print("❌ Pass --kitchen-id or set TEMP_KITCHEN_ID")
            sys.exit(1)
        ok = asyncio.run(seed_dishes(kitchen_id))
    else:
        ok = asyncio.run(seed_all(args.seed, args.orders_per_buyer))
    if not ok:
        sys.exit(1)
