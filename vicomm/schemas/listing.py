from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from vicomm.schemas.image import ListingImageRef

TITLE_MIN_LENGTH = 1
TITLE_MAX_LENGTH = 100
DESCRIPTION_MIN_LENGTH = 1
DESCRIPTION_MAX_LENGTH = 10000


class ListingForm(BaseModel):
    """Scalar fields of the multipart listing form."""

    title: str = Field(..., min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    description: str = Field(
        ..., min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH
    )
    category_id: str = Field(..., alias="categoryId", min_length=1)
    city_id: str = Field(..., alias="cityId", min_length=1)

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class OwnerSummary(BaseModel):
    id: int
    username: str
    name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OwnerContact(OwnerSummary):
    email: str
    phone_number: Optional[str] = None


class CityResponse(BaseModel):
    id: str
    name: str
    province: str

    model_config = ConfigDict(from_attributes=True)


class CategoryResponse(BaseModel):
    id: str
    slug: str
    title: str
    description: Optional[str] = None
    listing_count: int = 0


class ListingSummary(BaseModel):
    id: str
    title: str
    description: str
    is_featured: bool
    created_at: Optional[datetime] = None
    owner: OwnerSummary
    city: CityResponse
    thumbnail_id: Optional[str] = None


class CategoryListings(BaseModel):
    category: CategoryResponse
    featured: List[ListingSummary]
    listings: List[ListingSummary]


class ListingDetail(BaseModel):
    id: str
    title: str
    description: str
    category_slug: str
    is_featured: bool
    created_at: Optional[datetime] = None
    owner: OwnerContact
    city: CityResponse
    image_ids: List[str]
    upvote_count: int
    has_upvoted: bool


class ListingEditorData(BaseModel):
    id: str
    title: str
    description: str
    category_id: str
    city: CityResponse
    images: List[ListingImageRef]


class ListingSaved(BaseModel):
    id: str
    category_slug: str
    redirect_to: str
