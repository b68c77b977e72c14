import logging
from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, undefer
from starlette.datastructures import FormData

from vicomm.config import settings
from vicomm.exceptions import SubmissionError
from vicomm.models.listing import Listing, ListingCategory, ListingCity
from vicomm.models.listing_image import ListingImage
from vicomm.models.listing_upvote import ListingUpvote
from vicomm.schemas.image import ImagePlan, ListingImageRef
from vicomm.schemas.listing import (
    CityResponse,
    ListingDetail,
    ListingEditorData,
    ListingForm,
    ListingSummary,
    OwnerContact,
    OwnerSummary,
)
from vicomm.services.image_reconciler import (
    apply_plan,
    plan_images,
    read_image_descriptors,
)
from vicomm.utils.ids import generate_id

logger = logging.getLogger(__name__)

LISTING_FORM_FIELDS = ("title", "description", "categoryId", "cityId")


def listing_not_found(listing_id: str) -> HTTPException:
    # Same answer for missing listings and listings owned by someone else
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"No listing with the id {listing_id} exists",
    )


def _scalar_fields(form: FormData) -> dict:
    values = {}
    for name in LISTING_FORM_FIELDS:
        value = form.get(name)
        if isinstance(value, str):
            values[name] = value
    return values


def _validation_errors(exc: ValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else ""
        errors.setdefault(field, []).append(error["msg"])
    return errors


def thumbnail_ids(db: Session, listing_ids: List[str]) -> Dict[str, str]:
    if not listing_ids:
        return {}
    rows = db.execute(
        select(ListingImage.listing_id, ListingImage.id)
        .where(
            ListingImage.listing_id.in_(listing_ids),
            ListingImage.is_thumbnail.is_(True),
        )
        .order_by(ListingImage.created_at)
    ).all()
    thumbnails: Dict[str, str] = {}
    for listing_id, image_id in rows:
        thumbnails.setdefault(listing_id, image_id)
    return thumbnails


def build_summaries(db: Session, listings: List[Listing]) -> List[ListingSummary]:
    thumbnails = thumbnail_ids(db, [listing.id for listing in listings])
    return [
        ListingSummary(
            id=listing.id,
            title=listing.title,
            description=listing.description,
            is_featured=listing.is_featured,
            created_at=listing.created_at,
            owner=OwnerSummary.model_validate(listing.owner),
            city=CityResponse.model_validate(listing.city),
            thumbnail_id=thumbnails.get(listing.id),
        )
        for listing in listings
    ]


class ListingService:
    def _get_owned_listing(
        self, db: Session, listing_id: str, owner_id: int
    ) -> Listing:
        listing = db.execute(
            select(Listing).where(
                Listing.id == listing_id, Listing.owner_id == owner_id
            )
        ).scalar_one_or_none()
        if not listing:
            raise listing_not_found(listing_id)
        return listing

    async def save_listing(
        self,
        db: Session,
        form: FormData,
        owner_id: int,
        listing_id: Optional[str] = None,
    ) -> Tuple[Listing, ImagePlan]:
        """Create a listing, or edit one owned by ``owner_id``, from a multipart form.

        Everything is validated before the first write. Listing fields and
        the image plan are committed together or not at all.
        """
        listing = None
        persisted_ids: List[str] = []
        if listing_id is not None:
            listing = self._get_owned_listing(db, listing_id, owner_id)
            persisted_ids = list(
                db.execute(
                    select(ListingImage.id).where(ListingImage.listing_id == listing.id)
                ).scalars()
            )

        errors: Dict[str, List[str]] = {}
        data: Optional[ListingForm] = None
        try:
            data = ListingForm.model_validate(_scalar_fields(form))
        except ValidationError as exc:
            errors.update(_validation_errors(exc))

        if data is not None:
            if db.get(ListingCategory, data.category_id) is None:
                errors.setdefault("categoryId", []).append("Category not found")
            if db.get(ListingCity, data.city_id) is None:
                errors.setdefault("cityId", []).append("City not found")

        descriptors, image_errors = await read_image_descriptors(
            form, persisted_ids, settings.MAX_UPLOAD_SIZE
        )
        for field, messages in image_errors.items():
            errors.setdefault(field, []).extend(messages)

        if errors:
            raise SubmissionError(errors)

        plan = plan_images(persisted_ids, descriptors)
        try:
            if listing is None:
                listing = Listing(id=generate_id(), owner_id=owner_id)
                db.add(listing)
            listing.title = data.title
            listing.description = data.description
            listing.category_id = data.category_id
            listing.city_id = data.city_id
            apply_plan(db, listing.id, plan)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error("Saving listing %s failed", listing_id or "<new>", exc_info=True)
            raise

        db.refresh(listing)
        logger.info(
            "Saved listing %s for user %s (%d images created, %d updated, %d deleted)",
            listing.id,
            owner_id,
            len(plan.creates),
            len(plan.updates),
            len(plan.deletes),
        )
        return listing, plan

    async def get_listing_detail(
        self, db: Session, listing_id: str, viewer_id: Optional[int] = None
    ) -> ListingDetail:
        listing = db.execute(
            select(Listing)
            .options(
                joinedload(Listing.owner),
                joinedload(Listing.city),
                joinedload(Listing.category),
            )
            .where(Listing.id == listing_id)
        ).scalar_one_or_none()
        if not listing:
            raise listing_not_found(listing_id)

        image_ids = list(
            db.execute(
                select(ListingImage.id)
                .where(ListingImage.listing_id == listing.id)
                .order_by(ListingImage.is_thumbnail.desc(), ListingImage.created_at)
            ).scalars()
        )
        upvote_count = db.execute(
            select(func.count(ListingUpvote.id)).where(
                ListingUpvote.listing_id == listing.id
            )
        ).scalar_one()
        has_upvoted = False
        if viewer_id is not None:
            has_upvoted = (
                db.execute(
                    select(ListingUpvote.id).where(
                        ListingUpvote.listing_id == listing.id,
                        ListingUpvote.owner_id == viewer_id,
                    )
                ).first()
                is not None
            )

        return ListingDetail(
            id=listing.id,
            title=listing.title,
            description=listing.description,
            category_slug=listing.category.slug,
            is_featured=listing.is_featured,
            created_at=listing.created_at,
            owner=OwnerContact.model_validate(listing.owner),
            city=CityResponse.model_validate(listing.city),
            image_ids=image_ids,
            upvote_count=upvote_count,
            has_upvoted=has_upvoted,
        )

    async def get_editor_data(
        self, db: Session, listing_id: str, owner_id: int
    ) -> ListingEditorData:
        listing = self._get_owned_listing(db, listing_id, owner_id)
        return ListingEditorData(
            id=listing.id,
            title=listing.title,
            description=listing.description,
            category_id=listing.category_id,
            city=CityResponse.model_validate(listing.city),
            images=[ListingImageRef.model_validate(image) for image in listing.images],
        )

    async def get_listings_by_owner(
        self, db: Session, owner_id: int
    ) -> List[ListingSummary]:
        listings = (
            db.execute(
                select(Listing)
                .options(joinedload(Listing.owner), joinedload(Listing.city))
                .where(Listing.owner_id == owner_id)
                .order_by(Listing.created_at.desc())
            )
            .scalars()
            .all()
        )
        return build_summaries(db, listings)

    async def delete_listing(self, db: Session, listing_id: str, owner_id: int):
        listing = self._get_owned_listing(db, listing_id, owner_id)
        db.delete(listing)
        db.commit()
        logger.info("Deleted listing %s for user %s", listing_id, owner_id)

    async def set_featured(
        self, db: Session, listing_id: str, is_featured: bool
    ) -> Listing:
        listing = db.get(Listing, listing_id)
        if not listing:
            raise listing_not_found(listing_id)
        listing.is_featured = is_featured
        db.commit()
        db.refresh(listing)
        return listing

    async def get_image(self, db: Session, image_id: str) -> ListingImage:
        image = db.execute(
            select(ListingImage)
            .options(undefer(ListingImage.blob))
            .where(ListingImage.id == image_id)
        ).scalar_one_or_none()
        if not image:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Image with id {image_id} not found",
            )
        return image
