"""Tests for database URL handling, settings and wiring."""
import importlib.util
import logging
import pkgutil
import ssl
import typing
from pathlib import Path

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

import agrimarket
from agrimarket.bootstrap import LOG_FORMAT, configure_logging, marketplace_session
from agrimarket.domain.marketplace.models import Listing
from agrimarket.domain.marketplace.policies import Actor, ActorRole
from agrimarket.domain.marketplace.repositories import ListingRepository
from agrimarket.domain.marketplace.services import MarketplaceService
from agrimarket.infra.db import models  # noqa: F401
from agrimarket.infra.db.base import (
    Base,
    async_pg_connect_args,
    async_pg_url_without_sslmode,
    create_session_factory,
    normalize_async_pg_url,
)
from agrimarket.infra.db.repositories.listing_repo import ListingRepositoryImpl
from agrimarket.settings import Settings


def test_normalize_async_pg_url():
    assert normalize_async_pg_url("postgresql://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
    assert normalize_async_pg_url("postgres://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
    assert normalize_async_pg_url(" sqlite+aiosqlite:///x.db ") == "sqlite+aiosqlite:///x.db"


def test_connect_args_follow_sslmode():
    url = "postgresql+asyncpg://u:p@h/db?sslmode=require"
    assert async_pg_connect_args("postgresql+asyncpg://u:p@h/db") == {}
    assert async_pg_connect_args(url, verify=True) == {"ssl": True}
    ctx = async_pg_connect_args(url)["ssl"]
    assert isinstance(ctx, ssl.SSLContext)
    assert ctx.verify_mode == ssl.CERT_NONE


def test_url_without_sslmode():
    url = "postgresql+asyncpg://u:p@h/db?sslmode=require&application_name=market"
    assert async_pg_url_without_sslmode(url) == "postgresql+asyncpg://u:p@h/db?application_name=market"


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("SETTLEMENT_MAX_RETRIES", raising=False)
    settings = Settings(_env_file=None)
    assert settings.listing_default_limit == 100
    assert settings.listing_max_limit == 500
    assert settings.settlement_max_retries == 3


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("SETTLEMENT_MAX_RETRIES", "7")
    monkeypatch.setenv("LISTING_MAX_LIMIT", "50")
    settings = Settings(_env_file=None)
    assert settings.settlement_max_retries == 7
    assert settings.listing_max_limit == 50


def test_configure_logging(monkeypatch):
    captured = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: captured.update(kwargs))

    configure_logging(Settings(_env_file=None, log_level="warning"))
    assert captured == {"level": logging.WARNING, "format": LOG_FORMAT}

    configure_logging(Settings(_env_file=None, debug=True))
    assert captured["level"] == logging.DEBUG


async def test_list_limit_is_capped(engine, test_settings):
    farmer = Actor("farmer-1", ActorRole.FARMER)
    capped = test_settings.model_copy(update={"listing_max_limit": 2})
    async with marketplace_session(create_session_factory(engine), capped) as service:
        assert isinstance(service, MarketplaceService)
        for crop in ("Jowar", "Ragi", "Bajra"):
            await service.create_listing(farmer, {
                "crop_name": crop, "quantity": 5, "unit": "kg", "price": 40, "location": "Dharwad",
            })
        assert len(await service.list_listings(limit=10)) == 2


def test_initial_migration_matches_models(tmp_path):
    """The first revision creates the same tables and columns as the ORM models."""
    path = Path(__file__).parent.parent / "alembic" / "versions" / "001_marketplace_tables.py"
    spec = importlib.util.spec_from_file_location("marketplace_tables", path)
    migration = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(migration)

    engine = sa.create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            migration.upgrade()
        inspector = sa.inspect(conn)
        for table in Base.metadata.sorted_tables:
            migrated = {c["name"] for c in inspector.get_columns(table.name)}
            assert migrated == set(table.columns.keys()), table.name
    engine.dispose()


def test_every_module_imports_and_resolves_annotations():
    """Annotations stay resolvable where a class defines a method named ``list``."""
    for module_info in pkgutil.walk_packages(agrimarket.__path__, "agrimarket."):
        importlib.import_module(module_info.name)

    for cls in (ListingRepository, ListingRepositoryImpl):
        hints = typing.get_type_hints(cls.list_by_farmer)
        assert hints["return"] == list[Listing]
        assert typing.get_type_hints(cls.list)["return"] == list[Listing]
