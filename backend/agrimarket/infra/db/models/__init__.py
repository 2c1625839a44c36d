"""Database models."""
from agrimarket.infra.db.models.user import UserModel
from agrimarket.infra.db.models.marketplace import ListingModel, OfferModel

__all__ = ["UserModel", "ListingModel", "OfferModel"]
