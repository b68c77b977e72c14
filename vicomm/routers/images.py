from fastapi import APIRouter, Response
from starlette import status

from vicomm.dependencies import db_dependency
from vicomm.services.listing_service import ListingService

router = APIRouter(prefix="/images", tags=["images"])

# Ids change whenever the bytes change, so a response never goes stale
IMMUTABLE_CACHE = "public, max-age=31536000, immutable"


@router.get("/{image_id}", status_code=status.HTTP_200_OK)
async def get_listing_image(db: db_dependency, image_id: str):
    image = await ListingService().get_image(db, image_id)
    return Response(
        content=image.blob,
        media_type=image.content_type,
        headers={
            "Cache-Control": IMMUTABLE_CACHE,
            "Content-Length": str(len(image.blob)),
        },
    )
