"""Marketplace domain models."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from agrimarket.domain.common.types import utcnow


class ListingStatus(str, Enum):
    """Listing status enum."""
    ACTIVE = "active"
    SOLD = "sold"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not ListingStatus.ACTIVE


class OfferStatus(str, Enum):
    """Offer status enum."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"  # Declared only; nothing transitions here yet


class Unit(str, Enum):
    """Unit of measurement for listed produce."""
    KG = "kg"
    QUINTAL = "quintal"
    TON = "ton"
    DOZEN = "dozen"
    PIECE = "piece"


class QualityGrade(str, Enum):
    """Quality grade of listed produce."""
    A = "A"
    B = "B"
    C = "C"
    PREMIUM = "Premium"
    REGULAR = "Regular"
    ECONOMY = "Economy"


class ContactMethod(str, Enum):
    """Buyer's preferred contact channel."""
    PHONE = "phone"
    EMAIL = "email"
    IN_APP = "in-app"


class ListingSort(str, Enum):
    """Sortable listing fields (always descending)."""
    CREATED_AT = "created_at"
    PRICE = "price"
    QUANTITY = "quantity"


@dataclass
class ContactDetails:
    """How the seller can reach a buyer."""
    phone: Optional[str] = None
    email: Optional[str] = None
    preferred_method: ContactMethod = ContactMethod.IN_APP

    def to_dict(self) -> dict:
        return {
            "phone": self.phone,
            "email": self.email,
            "preferred_method": self.preferred_method.value,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ContactDetails":
        if not data:
            return cls()
        return cls(
            phone=data.get("phone"),
            email=data.get("email"),
            preferred_method=ContactMethod(data.get("preferred_method") or ContactMethod.IN_APP.value),
        )


@dataclass
class Listing:
    """Product listing domain model: one farmer's batch of produce for sale."""
    id: str
    farmer_id: str
    crop_name: str
    quantity: float
    unit: Unit
    price: float
    quality: QualityGrade
    location: str
    status: ListingStatus
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    harvest_date: Optional[date] = None
    images: list[str] = field(default_factory=list)
    organic_certified: bool = False
    version: int = 1

    @property
    def listing_age_days(self) -> int:
        """Whole days since the listing was created."""
        return (utcnow() - self.created_at).days


@dataclass
class Offer:
    """Purchase offer domain model: a buyer's proposal against a listing."""
    id: str
    listing_id: str
    buyer_id: str
    offer_price: float
    quantity: float
    status: OfferStatus
    created_at: datetime
    updated_at: datetime
    message: Optional[str] = None
    contact_details: ContactDetails = field(default_factory=ContactDetails)
    responded_at: Optional[datetime] = None


@dataclass
class ListingFilter:
    """Predicate for listing searches. Unset fields do not filter."""
    crop_name: Optional[str] = None
    location: Optional[str] = None
    quality: Optional[QualityGrade] = None
    status: Optional[ListingStatus] = ListingStatus.ACTIVE
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    farmer_id: Optional[str] = None


@dataclass
class UserSummary:
    """Public part of a user record."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass
class ListingSummary:
    """Listing fields shown alongside an offer."""
    id: str
    crop_name: str
    unit: Unit
    price: float
    quantity: float
    status: ListingStatus
    farmer: UserSummary

    @classmethod
    def of(cls, listing: Listing, farmer: UserSummary) -> "ListingSummary":
        return cls(
            id=listing.id,
            crop_name=listing.crop_name,
            unit=listing.unit,
            price=listing.price,
            quantity=listing.quantity,
            status=listing.status,
            farmer=farmer,
        )


@dataclass
class OfferView:
    """Offer resolved with buyer and listing summaries."""
    offer: Offer
    buyer: UserSummary
    listing: Optional[ListingSummary]


@dataclass
class ListingView:
    """Listing resolved with its farmer's summary."""
    listing: Listing
    farmer: UserSummary
