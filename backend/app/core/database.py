from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool

from app.core.config import settings

DATABASE_URL = settings.DATABASE_URL


def sync_url(url: str) -> str:
    """Swap the async driver for its blocking counterpart (alembic, inspection)."""
    return url.replace("+aiosqlite", "").replace("+asyncpg", "+psycopg2")


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_async_engine(
        url,
        connect_args=connect_args,
        poolclass=NullPool,
        echo=echo,
    )

    if url.startswith("sqlite"):
        # cascade from buckets to files relies on SQLite FK enforcement
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def make_sessionmaker(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = make_engine(DATABASE_URL, echo=settings.DATABASE_ECHO)

SessionLocal = make_sessionmaker(engine)

Base = declarative_base()


async def get_db():
    async with SessionLocal() as session:
        yield session
