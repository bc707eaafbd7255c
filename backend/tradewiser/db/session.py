import os
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from tradewiser.core.config import settings


def get_async_database_uri(uri: str = None) -> str:
    """Turn the configured sqlite:/// URI into its aiosqlite form"""
    uri = uri or settings.SQLITE_DATABASE_URI
    if uri.startswith("sqlite:///"):
        return uri.replace("sqlite:///", "sqlite+aiosqlite:///")
    return uri


# SQL echo only when SQL_DEBUG=true
# SQLite connections are cheap, so no pooling across event loops
engine = create_async_engine(
    get_async_database_uri(),
    echo=os.getenv("SQL_DEBUG", "false").lower() == "true",
    poolclass=NullPool,
    future=True,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
