"""
Kitchen Geocoding

Looks up coordinates for kitchen addresses that have none, using the
configured geo service (Nominatim or Google Maps in production, the mock
in development).
Run from project root: python scripts/geocode_kitchens.py [--delay 1.0]
"""

import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ghorer_khabar.core.config import setup_logging
from ghorer_khabar.database import async_session_maker, engine, init_db
from ghorer_khabar.maintenance.addresses import GEOCODE_DELAY_SECONDS, geocode_kitchen_addresses
from ghorer_khabar.services.geo import get_geo_service


async def main(delay: float) -> bool:
    geo_service = get_geo_service()

    print("=" * 60)
    print("🗺️ KITCHEN GEOCODING")
    print("=" * 60)
    print(f"🔧 Provider: {type(geo_service).__name__}")
    print(f"⏱️ Delay between requests: {delay:g}s")

    await init_db()
    async with async_session_maker() as db:
        report = await geocode_kitchen_addresses(db, geo_service, delay=delay)
    await engine.dispose()

    print(f"\n📋 {report.found} kitchen addresses without coordinates")
    for message in report.messages:
        print(f"   • {message}")

    print("\n" + "=" * 60)
    print(f"✅ Geocoded: {report.succeeded}")
    print(f"❌ Failed:   {report.failed}")
    print("=" * 60)
    return report.ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Geocode kitchen addresses")
    parser.add_argument("--delay", type=float, default=GEOCODE_DELAY_SECONDS, help="Seconds between requests")
    args = parser.parse_args()

    setup_logging()
    if not asyncio.run(main(args.delay)):
        sys.exit(1)
