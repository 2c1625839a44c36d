"""Pytest configuration for tests directory."""
import sys
from pathlib import Path

# Add the backend directory to Python path
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from agrimarket.bootstrap import build_marketplace_service, init_models
from agrimarket.domain.common.types import generate_id
from agrimarket.domain.marketplace.policies import Actor, ActorRole
from agrimarket.domain.marketplace.services import MarketplaceService
from agrimarket.infra.db.base import create_engine, create_session_factory
from agrimarket.infra.db.repositories.user_repo import UserRepositoryImpl
from agrimarket.settings import Settings


def pytest_configure(config):
    """Register markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that need a real DB (deselect with '-m \"not integration\"')"
    )


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from any local .env."""
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        listing_default_limit=100,
        listing_max_limit=500,
        settlement_max_retries=3,
    )


@pytest.fixture
async def engine(test_settings: Settings):
    """In-memory SQLite engine with the marketplace schema."""
    engine = create_engine(
        test_settings,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    """Create a test database session."""
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def actors(db_session: AsyncSession) -> dict[str, Actor]:
    """Two farmers, a buyer, an expert and an admin, registered in the user directory."""
    actors = {
        "farmer": Actor(generate_id(), ActorRole.FARMER),
        "other_farmer": Actor(generate_id(), ActorRole.FARMER),
        "buyer": Actor(generate_id(), ActorRole.BUYER),
        "expert": Actor(generate_id(), ActorRole.EXPERT),
        "admin": Actor(generate_id(), ActorRole.ADMIN),
    }
    users = UserRepositoryImpl(db_session)
    for name, actor in actors.items():
        await users.upsert(actor.id, name.replace("_", " ").title(), f"{name}@farm.test", actor.role.value)
    return actors


@pytest.fixture
async def marketplace_service(db_session: AsyncSession, test_settings: Settings) -> MarketplaceService:
    """Create a marketplace service instance."""
    return build_marketplace_service(db_session, test_settings)


@pytest.fixture
def wheat_attrs() -> dict:
    """A typical wheat listing."""
    return {
        "crop_name": "Wheat",
        "quantity": 100,
        "unit": "quintal",
        "price": 20,
        "quality": "A",
        "location": "Ludhiana, Punjab",
        "description": "Sharbati wheat, cleaned and bagged",
        "harvest_date": "2024-04-10",
        "organic_certified": True,
    }
