from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from website_improver.platform.config import settings


def engine_options(database_url: str) -> dict:
    """Pool settings for server databases; SQLite keeps the driver defaults."""
    if database_url.startswith("sqlite"):
        return {"echo": False, "future": True}
    return {
        "echo": False,
        "future": True,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "pool_size": 20,
        "max_overflow": 30,  # (burst capacity)
        "pool_timeout": 30,
    }


engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False, autocommit=False)


async def get_db():
    async with SessionLocal() as session:
        yield session
