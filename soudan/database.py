import logging
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def tenant_database_name(domain: str) -> str:
    """File name stem for a tenant's database: the domain without its scheme."""
    return domain.replace("http://", "").replace("https://", "")


def create_tenant_engine(domain: str, testing: bool = False, data_dir: str = ".") -> AsyncEngine:
    """
    Create the engine backing one tenant's comment store.

    In testing mode every tenant gets its own private in-memory database; the
    StaticPool keeps the single connection alive for the engine's lifetime.
    """
    if testing:
        logger.info(f"Opening in-memory database for {domain}")
        return create_async_engine(
            "sqlite+aiosqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    path = Path(data_dir) / f"{tenant_database_name(domain)}.db"
    logger.info(f"Opening database {path} for {domain}")
    return create_async_engine(f"sqlite+aiosqlite:///{path}")


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
