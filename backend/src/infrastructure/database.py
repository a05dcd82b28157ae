"""Gerencia conexão com o banco (PostgreSQL em produção)."""
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from src.config import get_settings

settings = get_settings()


def normalize_database_url(url: str) -> str:
    """
    Converte URL para formato async se necessário.

    Railway fornece postgresql:// mas asyncpg precisa de postgresql+asyncpg://
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


database_url = normalize_database_url(settings.database_url)

# Pool só faz sentido no Postgres
_engine_kwargs = {}
if database_url.startswith("postgresql"):
    _engine_kwargs = {"pool_size": 10, "max_overflow": 20}

engine = create_async_engine(
    database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    **_engine_kwargs,
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency do FastAPI para injetar sessão do banco."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Cria tabelas do banco."""
    from src.domain.entities import Base
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
