"""Configurações da aplicação - carrega variáveis do .env"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",  # carrega local
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    # ===========================================
    # CORE
    # ===========================================
    environment: str = "development"
    database_url: str
    debug: bool = False
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # ===========================================
    # CRON (cron-job.org chama as rotas /api/cron/*)
    # ===========================================
    cron_secret: str

    # ===========================================
    # WAHA (WhatsApp HTTP API)
    # ===========================================
    waha_api_url: str = "http://localhost:3000"
    waha_api_key: Optional[str] = None
    waha_session: str = "default"
    whatsapp_timeout_seconds: float = 8.0

    # ===========================================
    # FILA DE MENSAGENS
    # ===========================================
    welcome_delay_minutes: int = 2
    dispatch_batch_limit: int = 20
    expired_pix_batch_limit: int = 50
    pix_expiry_grace_minutes: int = 16  # PIX expira em 15 min + 1 de folga
    dispatch_lease_seconds: int = 60  # lease de uma mensagem durante o envio
    business_timezone: str = "America/Sao_Paulo"

    # ===========================================
    # SCHEDULER INTERNO (opcional, o padrão é cron externo)
    # ===========================================
    scheduler_enabled: bool = False
    dispatch_interval_minutes: int = 2
    expired_pix_interval_minutes: int = 5

    # ===========================================
    # PROPRIEDADES
    # ===========================================
    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def waha_configured(self) -> bool:
        """Verifica se o WAHA está configurado."""
        return bool(self.waha_api_url and self.waha_api_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()
