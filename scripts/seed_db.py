#!/usr/bin/env python
"""Script to create tables and seed the storefront catalog.

This script:
1. Creates any missing tables from the ORM models
2. Upserts categories, products and Lagos delivery zones by their natural keys
3. Ensures the configured superadmin exists (if SUPERADMIN_EMAIL is set)

Usage:
    python scripts/seed_db.py

Requirements:
    - DATABASE_URL environment variable must be set
"""

import asyncio
import logging
import sys
from pathlib import Path

from sqlalchemy import select

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import get_settings
from src.core.database import dialect_insert, get_session_factory, init_database
from src.models import Category, DeliveryZone, Product
from src.services.backoffice_service import BackofficeService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

CATEGORIES = [
    {"name": "Smoothies & Juices", "slug": "smoothies-juices"},
    {"name": "Shawarma", "slug": "shawarma"},
    {"name": "Combos", "slug": "combos"},
]

# Prices in kobo
PRODUCTS = [
    ("Fruity Zobo", "fruity-zobo", "Refreshing zobo blend with fruity depth and a bold finish.", 250000, "smoothies-juices"),
    ("Green Detox Smoothie", "green-detox-smoothie", "Spinach-forward blend with cucumber and citrus brightness.", 280000, "smoothies-juices"),
    ("Banana Bliss Smoothie", "banana-bliss-smoothie", "Creamy banana smoothie with naturally sweet finish.", 270000, "smoothies-juices"),
    ("Berry Beet Smoothie", "berry-beet-smoothie", "Rich berry-beet blend with antioxidant-packed flavor.", 300000, "smoothies-juices"),
    ("Classic Chicken Shawarma", "classic-chicken-shawarma", "Loaded chicken shawarma with crisp veggies and creamy sauce.", 420000, "shawarma"),
    ("Classic Beef Shawarma", "classic-beef-shawarma", "Smoky beef shawarma with signature AT Thrill dressing.", 480000, "shawarma"),
    ("Shawarma + Drink Combo", "shawarma-drink-combo", "One shawarma and one drink, perfectly paired.", 620000, "combos"),
    ("Grilled Chicken & Fries Combo", "grilled-chicken-fries-combo", "Grilled chicken portions with fries and a side drink.", 950000, "combos"),
]

ZONES = [
    ("Ikeja", 180000, "45-60 mins"),
    ("Lekki", 250000, "55-70 mins"),
    ("Victoria Island", 260000, "55-75 mins"),
    ("Surulere", 200000, "45-65 mins"),
    ("Yaba", 190000, "40-60 mins"),
    ("Ajah", 280000, "65-85 mins"),
    ("Ikorodu", 300000, "75-95 mins"),
    ("Mainland", 210000, "50-70 mins"),
]


def seed_catalog(db) -> None:
    """Upsert categories and products by slug."""
    for category in CATEGORIES:
        stmt = dialect_insert(db, Category).values(**category)
        db.execute(stmt.on_conflict_do_update(index_elements=["slug"], set_={"name": category["name"]}))

    category_ids = {slug: category_id for category_id, slug in db.execute(select(Category.id, Category.slug)).all()}

    for name, slug, description, base_price, category_slug in PRODUCTS:
        values = {
            "name": name,
            "description": description,
            "base_price": base_price,
            "active": True,
            "in_stock": True,
            "category_id": category_ids[category_slug],
        }
        stmt = dialect_insert(db, Product).values(slug=slug, **values)
        db.execute(stmt.on_conflict_do_update(index_elements=["slug"], set_=values))

    logger.info("Seeded %d categories and %d products", len(CATEGORIES), len(PRODUCTS))


def seed_delivery_zones(db) -> None:
    """Create or reprice Lagos delivery zones."""
    for zone_name, fee, eta_text in ZONES:
        zone = db.execute(
            select(DeliveryZone).where(DeliveryZone.city == "Lagos", DeliveryZone.zone == zone_name)
        ).scalar_one_or_none()
        if zone is None:
            db.add(DeliveryZone(state="Lagos", city="Lagos", zone=zone_name, fee=fee, eta_text=eta_text))
        else:
            zone.fee = fee
            zone.eta_text = eta_text
            zone.active = True

    logger.info("Seeded %d delivery zones", len(ZONES))


async def main() -> int:
    """Main entry point for the seed script.

    Returns:
        int: Exit code (0 for success, 1 for failure).
    """
    settings = get_settings()
    init_database(create_tables=True)

    db = get_session_factory()()
    try:
        seed_catalog(db)
        seed_delivery_zones(db)
        db.commit()

        if settings.superadmin_email:
            await BackofficeService(db).ensure_seeded_superadmin()
        else:
            logger.warning("SUPERADMIN_EMAIL not set, skipping superadmin bootstrap")
    except Exception as e:
        db.rollback()
        logger.error("Seeding failed: %s", str(e))
        return 1
    finally:
        db.close()

    logger.info("Seed complete")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
