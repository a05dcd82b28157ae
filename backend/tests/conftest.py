"""
Fixtures compartilhadas dos testes.

Cada teste roda num SQLite em memória novo (aiosqlite + StaticPool), com as
tabelas criadas a partir dos models.
"""

import os

# Precisa existir antes de importar src (Settings exige essas variáveis)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

from datetime import timedelta
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.domain.entities import Base, Lead, LeadStage
from src.infrastructure.services.message_queue_service import MessageQueueService
from src.infrastructure.services.queue_config import MessageQueueConfig
from src.infrastructure.services.waha_service import DeliveryResult


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Sessão de banco limpa para cada teste."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def queue_config() -> MessageQueueConfig:
    return MessageQueueConfig(
        welcome_delay=timedelta(minutes=2),
        dispatch_batch_limit=20,
        expired_pix_batch_limit=50,
        pix_expiry_grace=timedelta(minutes=16),
        timezone="America/Sao_Paulo",
    )


@pytest.fixture
def queue(queue_config) -> MessageQueueService:
    return MessageQueueService(queue_config)


@pytest.fixture
def sender() -> AsyncMock:
    """Cliente de WhatsApp falso: sempre envia com sucesso."""
    mock = AsyncMock()
    mock.send_text.return_value = DeliveryResult(success=True, message_id="wamid-1")
    return mock


@pytest.fixture
async def lead(db_session) -> Lead:
    lead = Lead(name="João da Silva", phone="11999998888", stage=LeadStage.NEW.value)
    db_session.add(lead)
    await db_session.commit()
    return lead
