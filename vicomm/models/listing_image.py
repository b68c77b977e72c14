from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    LargeBinary,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, deferred
from vicomm.database import Base
from vicomm.utils.ids import generate_id


class ListingImage(Base):
    __tablename__ = "listing_images"

    # Regenerated whenever the blob is replaced, image URLs are keyed by it
    id = Column(String(32), primary_key=True, default=generate_id)
    listing_id = Column(
        String(32),
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content_type = Column(String(100), nullable=False)
    blob = deferred(Column(LargeBinary, nullable=False))
    is_thumbnail = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    listing = relationship("Listing", back_populates="images")
