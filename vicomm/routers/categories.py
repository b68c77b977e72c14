from typing import List

from fastapi import APIRouter
from starlette import status

from vicomm.dependencies import db_dependency
from vicomm.schemas.listing import CategoryListings, CategoryResponse
from vicomm.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("/", response_model=List[CategoryResponse], status_code=status.HTTP_200_OK)
async def get_categories(db: db_dependency):
    return await CategoryService().get_categories(db)


@router.get("/{category_slug}", response_model=CategoryListings)
async def get_category_listings(db: db_dependency, category_slug: str):
    """Listings of one category, featured listings split out first."""
    return await CategoryService().get_category_listings(db, category_slug)
