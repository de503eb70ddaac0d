"""
Admin Account

Creates an ADMIN user, or promotes an existing account with --promote.
Run from project root: python scripts/create_admin.py --email admin@example.com
"""

import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ghorer_khabar.core.config import setup_logging
from ghorer_khabar.database import async_session_maker, engine, init_db
from ghorer_khabar.maintenance.admin import create_admin


async def main(email: str, name: str | None, promote: bool) -> bool:
    print("=" * 60)
    print("🔐 ADMIN ACCOUNT")
    print("=" * 60)

    await init_db()
    async with async_session_maker() as db:
        report = await create_admin(db, email, name=name, promote=promote)
    await engine.dispose()

    for message in report.messages:
        print(f"{'✅' if report.ok else '❌'} {message}")
    return report.ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or promote an admin user")
    parser.add_argument("--email", required=True, help="Admin email address")
    parser.add_argument("--name", default=None, help="Display name")
    parser.add_argument("--promote", action="store_true", help="Promote an existing account")
    args = parser.parse_args()

    setup_logging()
    if not asyncio.run(main(args.email, args.name, args.promote)):
        sys.exit(1)
