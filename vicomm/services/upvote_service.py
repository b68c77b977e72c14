import logging

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vicomm.exceptions import UpvoteConflict
from vicomm.models.listing import Listing
from vicomm.models.listing_upvote import ListingUpvote

logger = logging.getLogger(__name__)

ALREADY_UPVOTED = "You already liked this listing!"
NOT_UPVOTED = "You haven't liked this listing yet!"


class UpvoteService:
    def _require_listing(self, db: Session, listing_id: str) -> Listing:
        listing = db.get(Listing, listing_id)
        if not listing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No listing with the id {listing_id} exists",
            )
        return listing

    def count(self, db: Session, listing_id: str) -> int:
        return db.execute(
            select(func.count(ListingUpvote.id)).where(
                ListingUpvote.listing_id == listing_id
            )
        ).scalar_one()

    def add_upvote(self, db: Session, listing_id: str, user_id: int) -> ListingUpvote:
        self._require_listing(db, listing_id)
        upvote = ListingUpvote(listing_id=listing_id, owner_id=user_id)
        db.add(upvote)
        try:
            db.commit()
        except IntegrityError:
            # Unique (listing_id, owner_id) constraint
            db.rollback()
            raise UpvoteConflict(ALREADY_UPVOTED)
        db.refresh(upvote)
        return upvote

    def remove_upvote(self, db: Session, listing_id: str, user_id: int) -> None:
        self._require_listing(db, listing_id)
        upvote = db.execute(
            select(ListingUpvote).where(
                ListingUpvote.listing_id == listing_id,
                ListingUpvote.owner_id == user_id,
            )
        ).scalar_one_or_none()
        if not upvote:
            raise UpvoteConflict(NOT_UPVOTED)
        db.delete(upvote)
        db.commit()
