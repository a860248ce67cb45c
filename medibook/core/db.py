from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from .config import settings
from .base import Base

engine = create_async_engine(settings.POSTGRES_DSN, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_session():
    async with SessionLocal() as session:
        yield session

async def init_models():
    # In dev-only "create_all" mode the app owns the central schema; otherwise migrations do.
    if settings.DB_MANAGE == "create_all":
        # import so every central model is registered on Base.metadata
        from medibook.modules.directory import models  # noqa: F401
        from medibook.modules.schedule import models as _schedule  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
