"""
SERVIÇO WAHA (WhatsApp HTTP API)
================================

Cliente do WAHA (hospedado no Render) para envio de texto.

Usado por:
- Job de disparo da fila (message_dispatch_job)

Nunca levanta exceção por problema de rede/HTTP: devolve DeliveryResult
com success=False e o motivo, para o job marcar a mensagem como FAILED.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from src.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None


def format_chat_id(phone: str) -> str:
    """
    Formata o telefone no chatId do WhatsApp.

    Sem código do país (até 11 dígitos e não começa com 55) assume Brasil.
    Exemplo: "(11) 99999-9999" -> "5511999999999@c.us"
    """
    digits = "".join(filter(str.isdigit, phone or ""))

    if not digits.startswith("55") and len(digits) <= 11:
        digits = "55" + digits

    return f"{digits}@c.us"


class WahaService:
    """Cliente WAHA (uma sessão)."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        session: str = "default",
        timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session
        self.timeout = timeout
        self._transport = transport

    async def send_text(self, phone: str, text: str) -> DeliveryResult:
        if not self.api_key:
            logger.warning("[WAHA] API key não configurada, mensagem não enviada")
            return DeliveryResult(success=False, error="API key not configured")

        chat_id = format_chat_id(phone)
        payload = {
            "chatId": chat_id,
            "text": text,
            "session": self.session,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/api/sendText",
                    json=payload,
                    headers={"X-Api-Key": self.api_key},
                )
                response.raise_for_status()

        except httpx.HTTPStatusError as e:
            error = _extract_error(e.response)
            logger.error(f"[WAHA] Falha ao enviar para {chat_id}: {error}")
            return DeliveryResult(success=False, error=error)

        except httpx.TimeoutException:
            logger.error(f"[WAHA] Timeout ({self.timeout}s) ao enviar para {chat_id}")
            return DeliveryResult(success=False, error=f"Timeout after {self.timeout}s")

        except httpx.HTTPError as e:
            logger.error(f"[WAHA] Erro ao enviar para {chat_id}: {e}")
            return DeliveryResult(success=False, error=str(e) or e.__class__.__name__)

        try:
            data = response.json()
        except ValueError:
            data = {}

        message_id = None
        if isinstance(data, dict):
            key = data.get("key") or {}
            message_id = key.get("id") if isinstance(key, dict) else None

        logger.info(f"[WAHA] Mensagem enviada: chatId={chat_id} messageId={message_id}")
        return DeliveryResult(success=True, message_id=message_id)


def _extract_error(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = {}
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"HTTP {response.status_code}"


def get_waha_service() -> WahaService:
    settings = get_settings()
    return WahaService(
        base_url=settings.waha_api_url,
        api_key=settings.waha_api_key,
        session=settings.waha_session,
        timeout=settings.whatsapp_timeout_seconds,
    )
