from typing import AsyncGenerator, Tuple

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

# Base for all models
Base = declarative_base()


def create_engine_and_sessionmaker(
    database_url: str, debug: bool = False
) -> Tuple[AsyncEngine, async_sessionmaker]:
    """Build the engine and session factory. Called once per process."""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=debug,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(
            database_url,
            echo=debug,
            pool_pre_ping=True,
            pool_size=20,
            max_overflow=30,
        )

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
    return engine, session_factory


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session"""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: AsyncEngine):
    """Initialize database tables"""
    async with engine.begin() as conn:
        # Import all models here to ensure they are registered with Base
        from .. import models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)
