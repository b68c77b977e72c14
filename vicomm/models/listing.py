from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from vicomm.database import Base
from vicomm.utils.ids import generate_id


class ListingCategory(Base):
    __tablename__ = "listing_categories"

    id = Column(String(32), primary_key=True, default=generate_id)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    listings = relationship("Listing", back_populates="category")


class ListingCity(Base):
    __tablename__ = "listing_cities"

    id = Column(String(32), primary_key=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(150), unique=True, nullable=False)
    province = Column(String(100), nullable=False, index=True)

    listings = relationship("Listing", back_populates="city")


class Listing(Base):
    __tablename__ = "listings"

    id = Column(String(32), primary_key=True, default=generate_id)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)

    owner_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id = Column(
        String(32), ForeignKey("listing_categories.id"), nullable=False, index=True
    )
    city_id = Column(String(32), ForeignKey("listing_cities.id"), nullable=False)

    is_featured = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    owner = relationship("User", back_populates="listings")
    category = relationship("ListingCategory", back_populates="listings")
    city = relationship("ListingCity", back_populates="listings")
    images = relationship(
        "ListingImage",
        back_populates="listing",
        cascade="all, delete-orphan",
        order_by="ListingImage.created_at",
    )
    upvotes = relationship(
        "ListingUpvote", back_populates="listing", cascade="all, delete-orphan"
    )
