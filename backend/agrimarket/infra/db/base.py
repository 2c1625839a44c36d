"""Database base configuration."""
import logging
import ssl
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from agrimarket.settings import Settings

logger = logging.getLogger(__name__)


def normalize_async_pg_url(url: str) -> str:
    """Ensure URL uses asyncpg driver; hosted Postgres often hands out postgresql:// (sync)."""
    u = (url or "").strip()
    if u.startswith("postgresql://"):
        return u.replace("postgresql://", "postgresql+asyncpg://", 1)
    if u.startswith("postgres://"):
        return u.replace("postgres://", "postgresql+asyncpg://", 1)
    return u


def _ssl_context_no_verify() -> ssl.SSLContext:
    """SSL context that skips certificate verification."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def async_pg_connect_args(url: str, verify: bool = False) -> dict:
    """connect_args for asyncpg: it takes ``ssl`` rather than ``sslmode``."""
    parsed = urlparse(url)
    qs = parse_qs(parsed.query, keep_blank_values=True)
    if qs.get("sslmode") != ["require"]:
        return {}
    if verify:
        return {"ssl": True}
    return {"ssl": _ssl_context_no_verify()}


def async_pg_url_without_sslmode(url: str) -> str:
    """Return URL with sslmode removed so asyncpg does not get an unknown kwarg."""
    parsed = urlparse(url)
    qs = parse_qs(parsed.query, keep_blank_values=True)
    qs.pop("sslmode", None)
    return urlunparse(parsed._replace(query=urlencode(qs, doseq=True)))


def create_engine(settings: Settings, url: Optional[str] = None, **kwargs) -> AsyncEngine:
    """Build the async engine for ``url`` (defaults to ``settings.database_url``)."""
    db_url = normalize_async_pg_url(url or settings.database_url)
    connect_args = kwargs.pop("connect_args", {})
    if db_url.startswith("postgresql+asyncpg://"):
        connect_args = {**async_pg_connect_args(db_url, settings.database_ssl_verify), **connect_args}
        db_url = async_pg_url_without_sslmode(db_url)
    logger.debug("Creating engine for %s", urlparse(db_url).scheme)
    return create_async_engine(
        db_url,
        connect_args=connect_args,
        echo=settings.database_echo,
        future=True,
        **kwargs,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory; one session per marketplace call."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


class Base(DeclarativeBase):
    """Base class for all models."""
    pass
