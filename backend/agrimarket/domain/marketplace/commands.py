"""Input models for marketplace operations.

Callers hand the service plain dicts or keyword arguments; these models
validate them before anything touches a store. pydantic failures are
re-raised as the domain ``ValidationError`` so the caller only has one
error taxonomy to map.
"""
from datetime import date
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from agrimarket.domain.common.errors import ValidationError
from agrimarket.domain.marketplace.models import (
    ContactDetails,
    ContactMethod,
    ListingStatus,
    QualityGrade,
    Unit,
)

DESCRIPTION_MAX_LENGTH = 500
MESSAGE_MAX_LENGTH = 300

# Statuses an owner may set directly; sold only comes from settlement
OWNER_SETTABLE_STATUSES = (ListingStatus.CANCELLED, ListingStatus.EXPIRED)

CommandT = TypeVar("CommandT", bound=BaseModel)


class ListingCreate(BaseModel):
    """Attributes of a new listing."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    crop_name: str = Field(min_length=1)
    quantity: float = Field(gt=0, allow_inf_nan=False)
    unit: Unit
    price: float = Field(gt=0, allow_inf_nan=False)
    quality: QualityGrade = QualityGrade.REGULAR
    location: str = Field(min_length=1)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    harvest_date: Optional[date] = None
    images: list[str] = Field(default_factory=list)
    organic_certified: bool = False


class ListingUpdate(BaseModel):
    """Owner patch for a listing. Only set fields are applied."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    crop_name: Optional[str] = Field(default=None, min_length=1)
    quantity: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    unit: Optional[Unit] = None
    price: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    quality: Optional[QualityGrade] = None
    location: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    harvest_date: Optional[date] = None
    images: Optional[list[str]] = None
    organic_certified: Optional[bool] = None
    status: Optional[ListingStatus] = None

    @field_validator("status")
    @classmethod
    def status_owner_settable(cls, value: Optional[ListingStatus]) -> Optional[ListingStatus]:
        if value is not None and value not in OWNER_SETTABLE_STATUSES:
            raise ValueError(f"status can only be set to {', '.join(s.value for s in OWNER_SETTABLE_STATUSES)}")
        return value

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually supplied."""
        return self.model_dump(exclude_unset=True)


class ContactDetailsInput(BaseModel):
    """Buyer contact details."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    preferred_method: ContactMethod = ContactMethod.IN_APP

    def to_domain(self) -> ContactDetails:
        return ContactDetails(
            phone=self.phone,
            email=str(self.email) if self.email else None,
            preferred_method=self.preferred_method,
        )


class OfferCreate(BaseModel):
    """A buyer's proposed terms."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    offer_price: float = Field(gt=0, allow_inf_nan=False)
    quantity: float = Field(gt=0, allow_inf_nan=False)
    message: Optional[str] = Field(default=None, max_length=MESSAGE_MAX_LENGTH)
    contact_details: ContactDetailsInput = Field(default_factory=ContactDetailsInput)


def parse_command(model: Type[CommandT], data: Any) -> CommandT:
    """Validate ``data`` into ``model``, raising the domain ValidationError on failure."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data if data is not None else {})
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "invalid input")
        raise ValidationError(f"{location}: {message}" if location else message, field=location or None) from e
