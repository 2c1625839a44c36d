"""Wiring for callers embedding the marketplace core."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from agrimarket.domain.marketplace.services import MarketplaceService
from agrimarket.infra.db.base import Base
from agrimarket.infra.db.repositories.listing_repo import ListingRepositoryImpl
from agrimarket.infra.db.repositories.offer_repo import OfferRepositoryImpl
from agrimarket.infra.db.repositories.user_repo import UserRepositoryImpl
from agrimarket.settings import Settings, get_settings

# Register models with Base.metadata
from agrimarket.infra.db import models  # noqa: F401

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging once for the process."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


async def init_models(engine: AsyncEngine) -> None:
    """Create tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Marketplace schema ready")


def build_marketplace_service(
    session: AsyncSession,
    settings: Optional[Settings] = None,
) -> MarketplaceService:
    """Marketplace service bound to one session."""
    return MarketplaceService(
        listings=ListingRepositoryImpl(session),
        offers=OfferRepositoryImpl(session),
        users=UserRepositoryImpl(session),
        db=session,
        settings=settings,
    )


@asynccontextmanager
async def marketplace_session(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Optional[Settings] = None,
) -> AsyncIterator[MarketplaceService]:
    """One session, and one service over it, per request."""
    async with session_factory() as session:
        yield build_marketplace_service(session, settings)
