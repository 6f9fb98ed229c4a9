from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from resumerank.core.config import settings

DATABASE_URL = settings.DATABASE_URL

engine_kwargs = {"echo": False, "future": True}
if DATABASE_URL.startswith("sqlite"):
    # aiosqlite connections must not be shared across event loops
    engine_kwargs["poolclass"] = NullPool

engine = create_async_engine(DATABASE_URL, **engine_kwargs)
AsyncSessionLocal = sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False, autocommit=False
)

# Dependency for FastAPI routes


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
