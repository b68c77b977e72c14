from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from vicomm.database import Base


class ListingUpvote(Base):
    __tablename__ = "listing_upvotes"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    listing_id = Column(
        String(32),
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("listing_id", "owner_id", name="uq_listing_upvotes_listing_owner"),
    )

    # Relationships
    owner = relationship("User", back_populates="upvotes")
    listing = relationship("Listing", back_populates="upvotes")
