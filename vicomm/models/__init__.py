# Import all models so they're registered with Base.metadata
from vicomm.models.user import User, UserRole
from vicomm.models.listing import Listing, ListingCategory, ListingCity
from vicomm.models.listing_image import ListingImage
from vicomm.models.listing_upvote import ListingUpvote
from vicomm.models.audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Listing",
    "ListingCategory",
    "ListingCity",
    "ListingImage",
    "ListingUpvote",
    "AuditLog",
]
