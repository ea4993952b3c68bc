#!/usr/bin/env python3
"""Seed database with sample stores.

Creates:
- A demo user who authors every sample store
- Sample stores around central Hamilton, ON (so /api/v1/stores/near has hits)
- A few reviews so /top has a ranking

Seed script is idempotent: stores whose slug already exists are skipped.

Usage:
    python -m scripts.seed
"""

import asyncio
import os
import sys
from uuid import UUID

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from storefinder.schemas import GeoPoint, ReviewCreate, StoreCreate
from storefinder.services.stores import add_review, create_store, slugify
from storefinder.stores.postgres import close_db, create_tables, init_db
from storefinder.stores.sql_repository import PostgresStoreRepository

load_dotenv()

DEMO_USER_ID = UUID("00000000-0000-4000-8000-000000000001")

# ============================================================
# Store Definitions
# ============================================================

SAMPLE_STORES = [
    {
        "name": "Mulberry Street Coffeehouse",
        "description": "Neighbourhood coffee house with house-roasted beans and fresh pastries.",
        "tags": ["Wifi", "Open Late", "Family Friendly"],
        "coordinates": (-79.8685, 43.2609),
        "address": "193 James St N, Hamilton, ON",
        "ratings": [5, 4, 5],
    },
    {
        "name": "Saigon Sushi Bar",
        "description": "Sushi and rolls made to order. Sushi platters for groups.",
        "tags": ["Licensed", "Family Friendly"],
        "coordinates": (-79.8711, 43.2561),
        "address": "28 King St E, Hamilton, ON",
        "ratings": [4, 3],
    },
    {
        "name": "Durand Coffee",
        "description": "Small-batch espresso and loose-leaf tea.",
        "tags": ["Wifi", "Vegetarian"],
        "coordinates": (-79.8799, 43.2527),
        "address": "142 Locke St S, Hamilton, ON",
        "ratings": [5],
    },
    {
        "name": "Lakeside Fish Market",
        "description": "Fresh fish counter with a sushi bar on weekends.",
        "tags": ["Licensed"],
        "coordinates": (-79.8472, 43.2811),
        "address": "Pier 8, Hamilton, ON",
        "ratings": [],
    },
]


async def seed_database() -> None:
    """Seed database with sample stores and reviews."""
    await init_db()
    await create_tables()
    repository = PostgresStoreRepository()

    try:
        print("Seeding database...")
        for store_def in SAMPLE_STORES:
            slug = slugify(store_def["name"])
            if await repository.get_by_slug(slug):
                print(f"  - {store_def['name']} (exists)")
                continue

            store = await create_store(
                repository,
                StoreCreate(
                    name=store_def["name"],
                    description=store_def["description"],
                    tags=store_def["tags"],
                    location=GeoPoint(
                        coordinates=store_def["coordinates"],
                        address=store_def["address"],
                    ),
                ),
                DEMO_USER_ID,
            )
            for rating in store_def["ratings"]:
                await add_review(repository, store.id, DEMO_USER_ID, ReviewCreate(rating=rating))
            print(f"  + {store.name} -> /store/{store.slug} ({len(store_def['ratings'])} reviews)")
        print("Done.")
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(seed_database())
