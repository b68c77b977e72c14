"""Seed cities and listing categories.

    python -m vicomm.seed

Safe to run repeatedly, existing rows are left alone.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from vicomm import locations
from vicomm.database import Base, SessionLocal, engine
from vicomm import models  # noqa: F401
from vicomm.models.listing import ListingCategory, ListingCity

logger = logging.getLogger(__name__)

CATEGORIES_TO_SEED = [
    {
        "slug": "buy-and-sell",
        "title": "Buy & Sell",
        "description": "Furniture, electronics, clothing and everything in between.",
    },
    {
        "slug": "cars-and-vehicles",
        "title": "Cars & Vehicles",
        "description": "Cars, trucks, motorcycles, boats and parts.",
    },
    {
        "slug": "real-estate",
        "title": "Real Estate",
        "description": "Houses, apartments and rooms for sale or rent.",
    },
    {
        "slug": "jobs",
        "title": "Jobs",
        "description": "Full-time, part-time and contract work.",
    },
    {
        "slug": "services",
        "title": "Services",
        "description": "Tutoring, moving, cleaning, repairs and more.",
    },
    {
        "slug": "pets",
        "title": "Pets",
        "description": "Pets for adoption, accessories and pet services.",
    },
]


def seed_cities(db: Session) -> int:
    existing = set(db.execute(select(ListingCity.id)).scalars())
    added = 0
    for city in locations.all_cities():
        if city.id in existing:
            continue
        db.add(
            ListingCity(
                id=city.id, name=city.name, slug=city.slug, province=city.province
            )
        )
        added += 1
    db.commit()
    return added


def seed_categories(db: Session, categories=CATEGORIES_TO_SEED) -> int:
    existing = set(db.execute(select(ListingCategory.slug)).scalars())
    added = 0
    for category in categories:
        if category["slug"] in existing:
            logger.debug("Category %s already exists", category["slug"])
            continue
        db.add(ListingCategory(**category))
        added += 1
    db.commit()
    return added


def run() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        cities = seed_cities(db)
        categories = seed_categories(db)
    finally:
        db.close()
    logger.info("Seeded %d cities and %d categories", cities, categories)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run()
