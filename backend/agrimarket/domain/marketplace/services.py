"""Marketplace domain services."""
import logging
from typing import Any, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.domain.common.errors import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from agrimarket.domain.common.types import generate_id, utcnow
from agrimarket.domain.marketplace.commands import (
    ListingCreate,
    ListingUpdate,
    OfferCreate,
    parse_command,
)
from agrimarket.domain.marketplace.models import (
    ContactDetails,
    Listing,
    ListingFilter,
    ListingSort,
    ListingStatus,
    ListingSummary,
    ListingView,
    Offer,
    OfferStatus,
    OfferView,
    UserSummary,
)
from agrimarket.domain.marketplace.policies import (
    Actor,
    Capability,
    require_capability,
    require_owner,
    require_owner_or_moderator,
)
from agrimarket.domain.marketplace.repositories import (
    ListingRepository,
    OfferRepository,
    UserDirectory,
)
from agrimarket.settings import Settings, get_settings

logger = logging.getLogger(__name__)

RESPONSE_DECISIONS = (OfferStatus.ACCEPTED, OfferStatus.REJECTED)


def compute_settlement(available: float, requested: float) -> tuple[float, ListingStatus]:
    """Quantity and status of a listing after accepting ``requested`` units.

    An offer that takes everything left marks the listing sold and leaves the
    recorded quantity as it was; otherwise the quantity shrinks.
    """
    if requested >= available:
        return available, ListingStatus.SOLD
    return available - requested, ListingStatus.ACTIVE


class MarketplaceService:
    """Listing and offer lifecycle: creation, offers, accept/reject settlement."""

    def __init__(
        self,
        listings: ListingRepository,
        offers: OfferRepository,
        users: UserDirectory,
        db: AsyncSession,
        settings: Optional[Settings] = None,
    ):
        self.listings = listings
        self.offers = offers
        self.users = users
        self.db = db
        self.settings = settings or get_settings()

    # Listings
    async def create_listing(self, actor: Actor, attrs: Union[dict, ListingCreate]) -> Listing:
        """Publish a new active listing owned by ``actor``."""
        require_capability(actor, Capability.LIST_PRODUCE, "Only farmers can create listings")
        command = parse_command(ListingCreate, attrs)

        now = utcnow()
        listing = Listing(
            id=generate_id(),
            farmer_id=actor.id,
            crop_name=command.crop_name,
            quantity=command.quantity,
            unit=command.unit,
            price=command.price,
            quality=command.quality,
            location=command.location,
            status=ListingStatus.ACTIVE,
            created_at=now,
            updated_at=now,
            description=command.description,
            harvest_date=command.harvest_date,
            images=list(command.images),
            organic_certified=command.organic_certified,
        )
        listing = await self.listings.create(listing)
        logger.info(
            "Listing created: id=%s farmer=%s crop=%s quantity=%s %s",
            listing.id, actor.id, listing.crop_name, listing.quantity, listing.unit.value,
        )
        return listing

    async def get_listing(self, listing_id: str) -> Listing:
        """Get a listing or raise NotFoundError."""
        listing = await self.listings.get(listing_id)
        if not listing:
            raise NotFoundError("Listing", listing_id)
        return listing

    async def list_listings(
        self,
        listing_filter: Optional[ListingFilter] = None,
        sort: Union[str, ListingSort] = ListingSort.CREATED_AT,
        limit: Optional[int] = None,
    ) -> list[Listing]:
        """Search listings; active ones, newest first, unless told otherwise."""
        try:
            sort = ListingSort(sort)
        except ValueError:
            raise ValidationError(f"Cannot sort listings by {sort!r}", field="sort")
        if limit is None:
            limit = self.settings.listing_default_limit
        if limit <= 0:
            raise ValidationError("limit must be positive", field="limit")
        limit = min(limit, self.settings.listing_max_limit)
        return await self.listings.list(listing_filter or ListingFilter(), sort=sort, limit=limit)

    async def view_listing(self, listing_id: str) -> ListingView:
        """A listing with its farmer's name and email."""
        listing = await self.get_listing(listing_id)
        return (await self._with_farmers([listing]))[0]

    async def browse_listings(
        self,
        listing_filter: Optional[ListingFilter] = None,
        sort: Union[str, ListingSort] = ListingSort.CREATED_AT,
        limit: Optional[int] = None,
    ) -> list[ListingView]:
        """Same search as ``list_listings``, each result with its farmer."""
        return await self._with_farmers(await self.list_listings(listing_filter, sort=sort, limit=limit))

    async def _with_farmers(self, listings: list[Listing]) -> list[ListingView]:
        people = await self.users.get_summaries({l.farmer_id for l in listings})
        return [
            ListingView(listing=l, farmer=people.get(l.farmer_id) or UserSummary(id=l.farmer_id))
            for l in listings
        ]

    async def list_my_listings(self, actor: Actor) -> list[Listing]:
        """Every listing the actor owns, whatever its status."""
        return await self.listings.list_by_farmer(actor.id)

    async def update_listing(
        self,
        actor: Actor,
        listing_id: str,
        patch: Union[dict, ListingUpdate],
    ) -> Listing:
        """Owner edit of an active listing."""
        listing = await self.get_listing(listing_id)
        require_owner(actor, listing.farmer_id, "You are not authorized to update this listing")
        if listing.status.is_terminal:
            raise InvalidStateError(f"Cannot update a listing with status {listing.status.value}")

        changes = parse_command(ListingUpdate, patch).changes()
        if not changes:
            return listing
        updated = await self._update_active(listing_id, changes, "update")
        logger.info("Listing updated: id=%s fields=%s", listing_id, sorted(changes))
        return updated

    async def cancel_listing(self, actor: Actor, listing_id: str) -> Listing:
        """Withdraw an active listing from sale."""
        listing = await self.get_listing(listing_id)
        require_owner_or_moderator(actor, listing.farmer_id, "You are not authorized to cancel this listing")
        if listing.status.is_terminal:
            raise InvalidStateError(f"Cannot cancel a listing with status {listing.status.value}")

        updated = await self._update_active(listing_id, {"status": ListingStatus.CANCELLED}, "cancel")
        logger.info("Listing cancelled: id=%s by=%s", listing_id, actor.id)
        return updated

    async def _update_active(self, listing_id: str, changes: dict, action: str) -> Listing:
        """Write an owner change, refusing it if the listing left active meanwhile."""
        updated = await self.listings.update(listing_id, changes)
        if updated:
            return updated
        current = await self.listings.get(listing_id)
        if not current:
            raise NotFoundError("Listing", listing_id)
        logger.warning("Listing %s became %s before the %s was written", listing_id, current.status.value, action)
        raise InvalidStateError(f"Cannot {action} a listing with status {current.status.value}")

    async def delete_listing(self, actor: Actor, listing_id: str) -> None:
        """Remove a listing and the offers made on it."""
        listing = await self.get_listing(listing_id)
        require_owner_or_moderator(actor, listing.farmer_id, "You are not authorized to delete this listing")
        if not await self.listings.delete(listing_id):
            raise NotFoundError("Listing", listing_id)
        logger.info("Listing deleted: id=%s by=%s", listing_id, actor.id)

    # Offers
    async def make_offer(
        self,
        actor: Actor,
        listing_id: str,
        offer_price: float,
        quantity: float,
        message: Optional[str] = None,
        contact_details: Union[dict, ContactDetails, None] = None,
    ) -> Offer:
        """Propose to buy part or all of a listing.

        Checks run in a fixed order and the first failure wins: listing exists,
        listing is active, buyer is not the owner, terms are valid and the
        quantity is available. Quantity is not reserved, so several pending
        offers may together ask for more than the listing holds.
        """
        listing = await self.get_listing(listing_id)
        if listing.status != ListingStatus.ACTIVE:
            raise InvalidStateError(f"Cannot offer on a listing with status {listing.status.value}")
        if actor.id == listing.farmer_id:
            raise AuthorizationError("Cannot offer on own listing")
        require_capability(actor, Capability.MAKE_OFFER, "Your role cannot make offers")

        if isinstance(contact_details, ContactDetails):
            contact_details = contact_details.to_dict()
        command = parse_command(OfferCreate, {
            "offer_price": offer_price,
            "quantity": quantity,
            "message": message,
            "contact_details": contact_details or {},
        })
        if command.quantity > listing.quantity:
            raise ValidationError("Requested quantity exceeds available quantity", field="quantity")

        now = utcnow()
        offer = Offer(
            id=generate_id(),
            listing_id=listing.id,
            buyer_id=actor.id,
            offer_price=command.offer_price,
            quantity=command.quantity,
            status=OfferStatus.PENDING,
            created_at=now,
            updated_at=now,
            message=command.message,
            contact_details=command.contact_details.to_domain(),
        )
        offer = await self.offers.create(offer)
        logger.info(
            "Offer created: id=%s listing=%s buyer=%s quantity=%s price=%s",
            offer.id, listing.id, actor.id, offer.quantity, offer.offer_price,
        )
        return offer

    async def respond_to_offer(self, actor: Actor, offer_id: str, decision: Any) -> Offer:
        """Accept or reject a pending offer on one of the actor's listings.

        Acceptance settles the listing in the same transaction as the offer
        update. A second response to the same offer fails with
        InvalidStateError and changes nothing.
        """
        try:
            decision = OfferStatus(decision)
        except ValueError:
            decision = None
        if decision not in RESPONSE_DECISIONS:
            raise ValidationError("Response must be either accepted or rejected", field="decision")

        try:
            offer = await self.offers.get(offer_id)
            if not offer:
                raise NotFoundError("Offer", offer_id)
            listing = await self.get_listing(offer.listing_id)
            require_owner(actor, listing.farmer_id, "You are not authorized to respond to this offer")
            if offer.status != OfferStatus.PENDING:
                logger.warning("Response to offer %s refused: already %s", offer.id, offer.status.value)
                raise InvalidStateError(f"Offer has already been {offer.status.value}")

            responded_at = utcnow()
            updated = await self.offers.transition(offer.id, OfferStatus.PENDING, decision, responded_at)
            if not updated:
                logger.warning("Offer %s left pending before it could be %s", offer.id, decision.value)
                raise InvalidStateError("Offer is no longer pending")
            if decision == OfferStatus.ACCEPTED:
                await self._settle(offer)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Offer %s: id=%s listing=%s by=%s", decision.value, offer.id, offer.listing_id, actor.id)
        return updated

    async def _settle(self, offer: Offer) -> Listing:
        """Apply an accepted offer to its listing inside the open transaction."""
        attempts = self.settings.settlement_max_retries + 1
        for attempt in range(1, attempts + 1):
            listing = await self.listings.get_for_update(offer.listing_id)
            if not listing:
                raise NotFoundError("Listing", offer.listing_id)
            if listing.status != ListingStatus.ACTIVE:
                logger.warning("Offer %s not accepted: listing %s is %s", offer.id, listing.id, listing.status.value)
                raise InvalidStateError(f"Cannot accept an offer on a listing with status {listing.status.value}")

            quantity, status = compute_settlement(listing.quantity, offer.quantity)
            settled = await self.listings.apply_settlement(listing.id, listing.version, quantity, status)
            if settled:
                logger.info(
                    "Listing settled: id=%s quantity=%s status=%s offer=%s",
                    settled.id, settled.quantity, settled.status.value, offer.id,
                )
                return settled
            logger.warning(
                "Listing %s changed during settlement of offer %s (attempt %d/%d)",
                listing.id, offer.id, attempt, attempts,
            )
        raise ConflictError(f"Listing {offer.listing_id} kept changing; offer {offer.id} was not accepted")

    async def list_offers_for_listing(self, actor: Actor, listing_id: str) -> list[OfferView]:
        """Offers on a listing, for its owner or a moderator."""
        listing = await self.get_listing(listing_id)
        require_owner_or_moderator(actor, listing.farmer_id, "You are not authorized to view these offers")

        offers = await self.offers.list_by_listing(listing_id)
        people = await self.users.get_summaries({o.buyer_id for o in offers} | {listing.farmer_id})
        summary = ListingSummary.of(listing, people.get(listing.farmer_id) or UserSummary(id=listing.farmer_id))
        return [
            OfferView(offer=o, buyer=people.get(o.buyer_id) or UserSummary(id=o.buyer_id), listing=summary)
            for o in offers
        ]

    async def list_my_offers(self, actor: Actor) -> list[OfferView]:
        """Offers the actor has made, with each listing and its owner."""
        offers = await self.offers.list_by_buyer(actor.id)
        listings = await self.listings.get_many({o.listing_id for o in offers})
        people = await self.users.get_summaries({actor.id} | {l.farmer_id for l in listings.values()})
        buyer = people.get(actor.id) or UserSummary(id=actor.id)

        views = []
        for o in offers:
            listing = listings.get(o.listing_id)
            summary = None
            if listing:
                farmer = people.get(listing.farmer_id) or UserSummary(id=listing.farmer_id)
                summary = ListingSummary.of(listing, farmer)
            views.append(OfferView(offer=o, buyer=buyer, listing=summary))
        return views
