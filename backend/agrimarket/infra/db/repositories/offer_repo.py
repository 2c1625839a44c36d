"""Offer repository implementation."""
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.domain.common.types import utcnow
from agrimarket.domain.marketplace.models import Offer, OfferStatus
from agrimarket.infra.db.models.marketplace import OfferModel


class OfferRepositoryImpl:
    """Offer store backed by SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, offer: Offer) -> Offer:
        """Persist a new offer."""
        model = OfferModel.from_entity(offer)
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model.to_entity()

    async def get(self, offer_id: str) -> Optional[Offer]:
        """Get offer by ID."""
        result = await self.session.execute(
            select(OfferModel)
            .where(OfferModel.id == offer_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def list_by_listing(self, listing_id: str) -> list[Offer]:
        """Offers against a listing, newest first."""
        result = await self.session.execute(
            select(OfferModel)
            .where(OfferModel.listing_id == listing_id)
            .order_by(OfferModel.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return [model.to_entity() for model in result.scalars().all()]

    async def list_by_buyer(self, buyer_id: str) -> list[Offer]:
        """Offers made by a buyer, newest first."""
        result = await self.session.execute(
            select(OfferModel)
            .where(OfferModel.buyer_id == buyer_id)
            .order_by(OfferModel.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return [model.to_entity() for model in result.scalars().all()]

    async def update(self, offer_id: str, changes: dict[str, Any]) -> Optional[Offer]:
        """Apply a patch to an offer."""
        result = await self.session.execute(
            update(OfferModel)
            .where(OfferModel.id == offer_id)
            .values(**changes, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.get(offer_id)

    async def transition(
        self,
        offer_id: str,
        from_status: OfferStatus,
        to_status: OfferStatus,
        responded_at: datetime,
    ) -> Optional[Offer]:
        """Conditional status change; left uncommitted for the caller's transaction."""
        result = await self.session.execute(
            update(OfferModel)
            .where(
                OfferModel.id == offer_id,
                OfferModel.status == from_status,
            )
            .values(status=to_status, responded_at=responded_at, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return await self.get(offer_id)
