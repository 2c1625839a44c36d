"""Marketplace database models."""
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from agrimarket.domain.marketplace.models import (
    ContactDetails,
    Listing,
    ListingStatus,
    Offer,
    OfferStatus,
    QualityGrade,
    Unit,
)
from agrimarket.infra.db.base import Base


def _str_enum(enum_cls, name: str) -> SAEnum:
    """Store the enum's value (e.g. "in-app"), not its member name."""
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )


class ListingModel(Base):
    """Product listing - a farmer's batch of produce for sale."""

    __tablename__ = "product_listings"

    id = Column(String, primary_key=True)
    farmer_id = Column(String, nullable=False)
    crop_name = Column(String, nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(_str_enum(Unit, "listing_unit"), nullable=False)
    price = Column(Float, nullable=False)  # Per unit
    quality = Column(_str_enum(QualityGrade, "quality_grade"), nullable=False, default=QualityGrade.REGULAR)
    description = Column(Text, nullable=True)
    location = Column(String, nullable=False)
    harvest_date = Column(Date, nullable=True)
    images = Column(JSON, nullable=False, default=list)  # Image URLs
    organic_certified = Column(Boolean, nullable=False, default=False)
    status = Column(_str_enum(ListingStatus, "listing_status"), nullable=False, default=ListingStatus.ACTIVE)
    version = Column(Integer, nullable=False, default=1)  # Bumped on every settlement
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    offers = relationship(
        "OfferModel",
        back_populates="listing",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_listing_quantity_non_negative"),
        CheckConstraint("price > 0", name="ck_listing_price_positive"),
        Index("ix_product_listings_farmer_id", "farmer_id"),
        Index("ix_product_listings_status", "status"),
        Index("ix_product_listings_created_at", "created_at"),
    )

    def to_entity(self) -> Listing:
        """Convert to domain entity."""
        return Listing(
            id=self.id,
            farmer_id=self.farmer_id,
            crop_name=self.crop_name,
            quantity=self.quantity,
            unit=self.unit,
            price=self.price,
            quality=self.quality,
            location=self.location,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
            description=self.description,
            harvest_date=self.harvest_date,
            images=list(self.images or []),
            organic_certified=bool(self.organic_certified),
            version=self.version,
        )

    @classmethod
    def from_entity(cls, entity: Listing) -> "ListingModel":
        """Create from domain entity."""
        return cls(
            id=entity.id,
            farmer_id=entity.farmer_id,
            crop_name=entity.crop_name,
            quantity=entity.quantity,
            unit=entity.unit,
            price=entity.price,
            quality=entity.quality,
            description=entity.description,
            location=entity.location,
            harvest_date=entity.harvest_date,
            images=list(entity.images),
            organic_certified=entity.organic_certified,
            status=entity.status,
            version=entity.version,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class OfferModel(Base):
    """Purchase offer - a buyer's proposal against a listing."""

    __tablename__ = "purchase_offers"

    id = Column(String, primary_key=True)
    listing_id = Column(String, ForeignKey("product_listings.id", ondelete="CASCADE"), nullable=False)
    buyer_id = Column(String, nullable=False)
    offer_price = Column(Float, nullable=False)
    quantity = Column(Float, nullable=False)
    status = Column(_str_enum(OfferStatus, "offer_status"), nullable=False, default=OfferStatus.PENDING)
    message = Column(Text, nullable=True)
    contact_details = Column(JSON, nullable=True)  # phone, email, preferred_method
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    responded_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    listing = relationship("ListingModel", back_populates="offers")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_offer_quantity_positive"),
        CheckConstraint("offer_price > 0", name="ck_offer_price_positive"),
        Index("ix_purchase_offers_listing_id", "listing_id"),
        Index("ix_purchase_offers_buyer_id", "buyer_id"),
        Index("ix_purchase_offers_created_at", "created_at"),
    )

    def to_entity(self) -> Offer:
        """Convert to domain entity."""
        return Offer(
            id=self.id,
            listing_id=self.listing_id,
            buyer_id=self.buyer_id,
            offer_price=self.offer_price,
            quantity=self.quantity,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
            message=self.message,
            contact_details=ContactDetails.from_dict(self.contact_details),
            responded_at=self.responded_at,
        )

    @classmethod
    def from_entity(cls, entity: Offer) -> "OfferModel":
        """Create from domain entity."""
        return cls(
            id=entity.id,
            listing_id=entity.listing_id,
            buyer_id=entity.buyer_id,
            offer_price=entity.offer_price,
            quantity=entity.quantity,
            status=entity.status,
            message=entity.message,
            contact_details=entity.contact_details.to_dict(),
            created_at=entity.created_at,
            responded_at=entity.responded_at,
            updated_at=entity.updated_at,
        )
