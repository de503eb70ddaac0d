"""
Kitchen Address Migration

Creates a kitchen Address for every kitchen that still keeps its location
in the legacy location/area/latitude/longitude fields.
Run from project root: python scripts/migrate_kitchen_addresses.py
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ghorer_khabar.core.config import setup_logging
from ghorer_khabar.database import async_session_maker, engine, init_db
from ghorer_khabar.maintenance.addresses import migrate_kitchen_addresses


async def main() -> bool:
    print("=" * 60)
    print("🏠 KITCHEN ADDRESS MIGRATION")
    print("=" * 60)

    await init_db()
    async with async_session_maker() as db:
        report = await migrate_kitchen_addresses(db)
    await engine.dispose()

    print(f"\n📋 Found {report.found} kitchens to migrate")
    for message in report.messages:
        print(f"   • {message}")

    print("\n" + "=" * 60)
    print(f"✅ Migrated: {report.succeeded}")
    print(f"❌ Failed:   {report.failed}")
    print("=" * 60)
    return report.ok


if __name__ == "__main__":
    setup_logging()
    if not asyncio.run(main()):
        sys.exit(1)
