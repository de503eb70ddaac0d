"""
Default Address Repair

Gives every user who has addresses but no default one their oldest
address as default.
Run from project root: python scripts/fix_default_addresses.py
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ghorer_khabar.core.config import setup_logging
from ghorer_khabar.database import async_session_maker, engine, init_db
from ghorer_khabar.maintenance.addresses import fix_default_addresses


async def main() -> bool:
    print("=" * 60)
    print("📍 DEFAULT ADDRESS REPAIR")
    print("=" * 60)

    await init_db()
    async with async_session_maker() as db:
        report = await fix_default_addresses(db)
    await engine.dispose()

    if not report.found:
        print("\n✅ Every user with addresses already has a default")
    for message in report.messages:
        print(f"   • {message}")

    print("\n" + "=" * 60)
    print(f"✅ Fixed {report.succeeded} users")
    print("=" * 60)
    return report.ok


if __name__ == "__main__":
    setup_logging()
    if not asyncio.run(main()):
        sys.exit(1)
