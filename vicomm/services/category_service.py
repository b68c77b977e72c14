from typing import List

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from vicomm.models.listing import Listing, ListingCategory
from vicomm.schemas.listing import CategoryListings, CategoryResponse
from vicomm.services.listing_service import build_summaries


def _category_response(category: ListingCategory, listing_count: int) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        slug=category.slug,
        title=category.title,
        description=category.description,
        listing_count=listing_count,
    )


class CategoryService:
    async def get_categories(self, db: Session) -> List[CategoryResponse]:
        rows = db.execute(
            select(ListingCategory, func.count(Listing.id))
            .outerjoin(Listing, Listing.category_id == ListingCategory.id)
            .group_by(ListingCategory.id)
            .order_by(ListingCategory.title)
        ).all()
        return [_category_response(category, count) for category, count in rows]

    async def get_category_listings(self, db: Session, slug: str) -> CategoryListings:
        category = db.execute(
            select(ListingCategory).where(ListingCategory.slug == slug)
        ).scalar_one_or_none()
        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Listing category {slug} not found",
            )

        listings = (
            db.execute(
                select(Listing)
                .options(joinedload(Listing.owner), joinedload(Listing.city))
                .where(Listing.category_id == category.id)
                .order_by(Listing.created_at.desc())
            )
            .scalars()
            .all()
        )
        summaries = build_summaries(db, listings)

        return CategoryListings(
            category=_category_response(category, len(summaries)),
            featured=[s for s in summaries if s.is_featured],
            listings=[s for s in summaries if not s.is_featured],
        )
