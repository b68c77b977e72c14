from typing import List

from fastapi import APIRouter, HTTPException
from sqlalchemy import func, select
from starlette import status

from vicomm.dependencies import CurrentUser, db_dependency
from vicomm.models.listing import Listing
from vicomm.models.user import User
from vicomm.schemas.listing import ListingSummary
from vicomm.schemas.user import PublicProfile, UserResponse
from vicomm.services.listing_service import ListingService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse, status_code=status.HTTP_200_OK)
def get_me(db: db_dependency, current_user: CurrentUser):
    user = db.get(User, current_user.get("id"))
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/me/listings", response_model=List[ListingSummary])
async def get_my_listings(db: db_dependency, current_user: CurrentUser):
    return await ListingService().get_listings_by_owner(db, current_user.get("id"))


@router.get("/{username}", response_model=PublicProfile)
def get_profile(db: db_dependency, username: str):
    user = db.execute(select(User).where(User.username == username)).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    listing_count = db.execute(
        select(func.count(Listing.id)).where(Listing.owner_id == user.id)
    ).scalar_one()
    return PublicProfile(
        id=user.id,
        username=user.username,
        name=user.name,
        created_at=user.created_at,
        listing_count=listing_count,
    )
