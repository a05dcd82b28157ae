"""Configuração explícita da fila de WhatsApp (injetada nos serviços e jobs)."""

from dataclasses import dataclass
from datetime import timedelta

from src.config import Settings, get_settings


@dataclass(frozen=True)
class MessageQueueConfig:
    welcome_delay: timedelta = timedelta(minutes=2)
    dispatch_batch_limit: int = 20
    expired_pix_batch_limit: int = 50
    pix_expiry_grace: timedelta = timedelta(minutes=16)
    # Maior que o timeout do WAHA: o lease não pode vencer no meio de um envio
    dispatch_lease: timedelta = timedelta(seconds=60)
    timezone: str = "America/Sao_Paulo"

    @classmethod
    def from_settings(cls, settings: Settings = None) -> "MessageQueueConfig":
        settings = settings or get_settings()
        return cls(
            welcome_delay=timedelta(minutes=settings.welcome_delay_minutes),
            dispatch_batch_limit=settings.dispatch_batch_limit,
            expired_pix_batch_limit=settings.expired_pix_batch_limit,
            pix_expiry_grace=timedelta(minutes=settings.pix_expiry_grace_minutes),
            dispatch_lease=timedelta(
                seconds=max(settings.dispatch_lease_seconds, settings.whatsapp_timeout_seconds + 30)
            ),
            timezone=settings.business_timezone,
        )
