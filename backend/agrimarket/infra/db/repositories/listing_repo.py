"""Listing repository implementation."""
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.domain.common.types import utcnow
from agrimarket.domain.marketplace.models import Listing, ListingFilter, ListingSort, ListingStatus
from agrimarket.infra.db.models.marketplace import ListingModel, OfferModel

_SORT_COLUMNS = {
    ListingSort.CREATED_AT: ListingModel.created_at,
    ListingSort.PRICE: ListingModel.price,
    ListingSort.QUANTITY: ListingModel.quantity,
}


class ListingRepositoryImpl:
    """Listing store backed by SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, listing: Listing) -> Listing:
        """Persist a new listing."""
        model = ListingModel.from_entity(listing)
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model.to_entity()

    async def get(self, listing_id: str) -> Optional[Listing]:
        """Get listing by ID."""
        result = await self.session.execute(
            select(ListingModel)
            .where(ListingModel.id == listing_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def get_many(self, listing_ids: set[str]) -> dict[str, Listing]:
        """Listings keyed by ID; missing IDs are left out."""
        if not listing_ids:
            return {}
        result = await self.session.execute(
            select(ListingModel).where(ListingModel.id.in_(sorted(listing_ids)))
            .execution_options(populate_existing=True)
        )
        return {model.id: model.to_entity() for model in result.scalars().all()}

    async def get_for_update(self, listing_id: str) -> Optional[Listing]:
        """Get listing with row-level lock for update."""
        result = await self.session.execute(
            select(ListingModel)
            .where(ListingModel.id == listing_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def update(self, listing_id: str, changes: dict[str, Any]) -> Optional[Listing]:
        """Apply an owner patch to an active listing.

        Bumps the version so in-flight settlements re-read. Returns None when
        the listing is gone or no longer active.
        """
        result = await self.session.execute(
            update(ListingModel)
            .where(
                ListingModel.id == listing_id,
                ListingModel.status == ListingStatus.ACTIVE,
            )
            .values(**changes, version=ListingModel.version + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.get(listing_id)

    async def apply_settlement(
        self,
        listing_id: str,
        expected_version: int,
        quantity: float,
        status: ListingStatus,
    ) -> Optional[Listing]:
        """Compare-and-set quantity/status on the version column.

        Left uncommitted: the caller commits it together with the offer transition.
        """
        result = await self.session.execute(
            update(ListingModel)
            .where(
                ListingModel.id == listing_id,
                ListingModel.version == expected_version,
            )
            .values(
                quantity=quantity,
                status=status,
                version=ListingModel.version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return await self.get(listing_id)

    async def delete(self, listing_id: str) -> bool:
        """Hard delete a listing and the offers made against it."""
        await self.session.execute(
            delete(OfferModel).where(OfferModel.listing_id == listing_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            delete(ListingModel).where(ListingModel.id == listing_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def list(
        self,
        listing_filter: ListingFilter,
        sort: ListingSort = ListingSort.CREATED_AT,
        limit: int = 100,
    ) -> list[Listing]:
        """Search listings.

        Crop name and location match case-insensitive substrings; quality and
        status match exactly; price bounds are inclusive.
        """
        query = select(ListingModel)
        f = listing_filter
        if f.status is not None:
            query = query.where(ListingModel.status == f.status)
        if f.crop_name:
            query = query.where(ListingModel.crop_name.icontains(f.crop_name, autoescape=True))
        if f.location:
            query = query.where(ListingModel.location.icontains(f.location, autoescape=True))
        if f.quality is not None:
            query = query.where(ListingModel.quality == f.quality)
        if f.min_price is not None:
            query = query.where(ListingModel.price >= f.min_price)
        if f.max_price is not None:
            query = query.where(ListingModel.price <= f.max_price)
        if f.farmer_id:
            query = query.where(ListingModel.farmer_id == f.farmer_id)

        sort_column = _SORT_COLUMNS[ListingSort(sort)]
        order = [sort_column.desc()]
        if sort_column is not ListingModel.created_at:
            order.append(ListingModel.created_at.desc())
        query = query.order_by(*order).limit(limit).execution_options(populate_existing=True)

        result = await self.session.execute(query)
        return [model.to_entity() for model in result.scalars().all()]

    async def list_by_farmer(self, farmer_id: str) -> list[Listing]:
        """All of a farmer's listings, any status, newest first."""
        result = await self.session.execute(
            select(ListingModel)
            .where(ListingModel.farmer_id == farmer_id)
            .order_by(ListingModel.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return [model.to_entity() for model in result.scalars().all()]
