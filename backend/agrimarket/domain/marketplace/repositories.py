"""Marketplace repository protocols."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from agrimarket.domain.marketplace.models import (
    Listing,
    ListingFilter,
    ListingSort,
    ListingStatus,
    Offer,
    OfferStatus,
    UserSummary,
)


class ListingRepository(Protocol):
    """Listing store protocol."""

    async def create(self, listing: Listing) -> Listing:
        """Persist a new listing."""
        ...

    async def get(self, listing_id: str) -> Optional[Listing]:
        """Get listing by ID."""
        ...

    async def get_many(self, listing_ids: set[str]) -> dict[str, Listing]:
        """Listings keyed by ID; missing IDs are omitted."""
        ...

    async def get_for_update(self, listing_id: str) -> Optional[Listing]:
        """Get listing by ID, locking the row until the transaction ends."""
        ...

    async def update(self, listing_id: str, changes: dict[str, Any]) -> Optional[Listing]:
        """Patch an active listing; None if it is gone or no longer active."""
        ...

    async def apply_settlement(
        self,
        listing_id: str,
        expected_version: int,
        quantity: float,
        status: ListingStatus,
    ) -> Optional[Listing]:
        """Write quantity/status if the stored version still matches. Does not commit."""
        ...

    async def delete(self, listing_id: str) -> bool:
        """Delete listing and its offers; False if nothing was deleted."""
        ...

    async def list(
        self,
        listing_filter: ListingFilter,
        sort: ListingSort = ListingSort.CREATED_AT,
        limit: int = 100,
    ) -> list[Listing]:
        """Filtered listings, sorted descending."""
        ...

    async def list_by_farmer(self, farmer_id: str) -> list[Listing]:
        """All listings of a farmer, newest first."""
        ...


class OfferRepository(Protocol):
    """Offer store protocol."""

    async def create(self, offer: Offer) -> Offer:
        """Persist a new offer."""
        ...

    async def get(self, offer_id: str) -> Optional[Offer]:
        """Get offer by ID."""
        ...

    async def list_by_listing(self, listing_id: str) -> list[Offer]:
        """Offers against a listing, newest first."""
        ...

    async def list_by_buyer(self, buyer_id: str) -> list[Offer]:
        """Offers made by a buyer, newest first."""
        ...

    async def update(self, offer_id: str, changes: dict[str, Any]) -> Optional[Offer]:
        """Apply a patch; None if the offer is gone."""
        ...

    async def transition(
        self,
        offer_id: str,
        from_status: OfferStatus,
        to_status: OfferStatus,
        responded_at: datetime,
    ) -> Optional[Offer]:
        """Move the offer out of ``from_status``; None if it was no longer there. Does not commit."""
        ...


class UserDirectory(Protocol):
    """Read-only lookup of user summaries."""

    async def get_summaries(self, user_ids: set[str]) -> dict[str, UserSummary]:
        """Summaries keyed by user ID; unknown IDs are omitted."""
        ...
