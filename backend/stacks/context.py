"""Process-wide collaborators, built once at startup and passed by reference."""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from stacks.config import Settings
from stacks.db.session import build_engine, build_session_factory
from stacks.services.auth_service import CredentialService
from stacks.services.cache_service import CacheService
from stacks.services.upload_service import UploadSigner


@dataclass
class AppContext:
    """Everything request handlers need beyond the request itself."""

    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    credentials: CredentialService
    cache: CacheService
    uploads: UploadSigner

    @classmethod
    def from_settings(cls, settings: Settings, engine: Optional[AsyncEngine] = None) -> "AppContext":
        engine = engine or build_engine(settings)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=build_session_factory(engine),
            credentials=CredentialService(settings),
            cache=CacheService(settings.REDIS_URL, enabled=settings.CACHE_ENABLED),
            uploads=UploadSigner(settings),
        )

    async def close(self) -> None:
        await self.cache.close()
        await self.engine.dispose()
