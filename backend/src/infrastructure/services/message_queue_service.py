"""
FILA DE MENSAGENS DO WHATSAPP
=============================

Agenda e cancela mensagens automáticas de um lead.

REGRAS:
- No máximo UMA mensagem PENDING/SENT por (lead, tipo): chamar duas vezes
  não duplica (webhooks podem ser reentregues)
- Boas-vindas: agendada para 2 min depois do cadastro
- Pagamento abandonado: nunca criada se o lead já tem pagamento aprovado;
  cancela a boas-vindas pendente
- Pagamento confirmado: cancela boas-vindas e abandonado pendentes

Toda mudança de status passa por transition_pending(): UPDATE condicionado a
status = PENDING, então estados finais (SENT, CANCELLED, FAILED) nunca mudam.

Os métodos recebem a sessão do chamador e NÃO fazem commit.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities import (
    Lead,
    Transaction,
    WhatsAppMessage,
    MessageType,
    MessageStatus,
    TransactionStatus,
    ACTIVE_MESSAGE_STATUSES,
    utcnow,
)
from src.domain.exceptions import InvalidTransitionError
from src.infrastructure.services.queue_config import MessageQueueConfig

logger = logging.getLogger(__name__)


async def transition_pending(
    session: AsyncSession,
    target: MessageStatus,
    *criteria,
    **values,
) -> int:
    """
    Move mensagens PENDING que batem com `criteria` para `target`.

    O WHERE status = PENDING é o ponto de serialização entre processos
    concorrentes: quem commitar primeiro ganha, o outro afeta 0 linhas.

    Returns:
        Quantidade de linhas alteradas
    """
    if not MessageStatus.PENDING.can_transition_to(target):
        raise InvalidTransitionError(
            "WhatsAppMessage", MessageStatus.PENDING.value, target.value
        )

    stmt = (
        update(WhatsAppMessage)
        .where(WhatsAppMessage.status == MessageStatus.PENDING.value, *criteria)
        .values(status=target.value, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount or 0


class MessageQueueService:
    """Agenda/cancela mensagens da fila (escrita)."""

    def __init__(self, config: Optional[MessageQueueConfig] = None):
        self.config = config or MessageQueueConfig()

    # =========================================================================
    # AGENDAMENTO
    # =========================================================================

    async def enqueue_welcome(
        self,
        session: AsyncSession,
        lead: Lead,
        now: Optional[datetime] = None,
    ) -> Optional[WhatsAppMessage]:
        """Agenda a boas-vindas para daqui `welcome_delay`."""
        now = now or utcnow()

        if await self.has_active_message(session, lead.id, MessageType.WELCOME):
            logger.info(f"[MessageQueue] Boas-vindas já agendada/enviada para lead {lead.id}")
            return None

        send_after = now + self.config.welcome_delay
        message = await self._create(session, lead, MessageType.WELCOME, send_after)

        logger.info(f"[MessageQueue] Boas-vindas agendada para lead {lead.id} (send_after={send_after.isoformat()})")
        return message

    async def enqueue_abandoned(
        self,
        session: AsyncSession,
        lead: Lead,
        now: Optional[datetime] = None,
    ) -> Optional[WhatsAppMessage]:
        """
        Agenda a mensagem de pagamento abandonado (elegível imediatamente).

        Pagamento aprovado sempre tem prioridade: se existe transação
        succeeded, não agenda nada.
        """
        now = now or utcnow()

        if await self.has_succeeded_payment(session, lead.id):
            logger.info(f"[MessageQueue] Lead {lead.id} já pagou, abandonado ignorado")
            return None

        if await self.has_active_message(session, lead.id, MessageType.PAYMENT_ABANDONED):
            logger.info(f"[MessageQueue] Abandonado já agendado/enviado para lead {lead.id}")
            return None

        # Tentou pagar: boas-vindas perde o sentido
        await self.cancel_pending(session, lead.id, MessageType.WELCOME, reason="payment_attempted")

        message = await self._create(session, lead, MessageType.PAYMENT_ABANDONED, now)

        logger.info(f"[MessageQueue] Abandonado agendado para lead {lead.id}")
        return message

    async def enqueue_confirmed(
        self,
        session: AsyncSession,
        lead: Lead,
        now: Optional[datetime] = None,
    ) -> Optional[WhatsAppMessage]:
        """Agenda a confirmação de pagamento e cancela as anteriores pendentes."""
        now = now or utcnow()

        if await self.has_active_message(session, lead.id, MessageType.PAYMENT_CONFIRMED):
            logger.info(f"[MessageQueue] Confirmação já agendada/enviada para lead {lead.id}")
            return None

        await self.cancel_pending(session, lead.id, MessageType.WELCOME, reason="payment_succeeded")
        await self.cancel_pending(session, lead.id, MessageType.PAYMENT_ABANDONED, reason="payment_succeeded")

        message = await self._create(session, lead, MessageType.PAYMENT_CONFIRMED, now)

        logger.info(f"[MessageQueue] Confirmação agendada para lead {lead.id}")
        return message

    # =========================================================================
    # CANCELAMENTO
    # =========================================================================

    async def cancel_pending(
        self,
        session: AsyncSession,
        lead_id: int,
        message_type: MessageType,
        reason: Optional[str] = None,
    ) -> int:
        """Cancela todas as mensagens PENDING do (lead, tipo). Retorna quantas."""
        count = await transition_pending(
            session,
            MessageStatus.CANCELLED,
            WhatsAppMessage.lead_id == lead_id,
            WhatsAppMessage.message_type == MessageType(message_type).value,
            cancel_reason=reason,
        )

        if count > 0:
            logger.info(f"[MessageQueue] {count} mensagem(ns) {MessageType(message_type).value} cancelada(s) para lead {lead_id}")

        return count

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    async def has_active_message(
        self,
        session: AsyncSession,
        lead_id: int,
        message_type: MessageType,
    ) -> bool:
        """Existe mensagem PENDING ou SENT desse tipo para o lead?"""
        result = await session.execute(
            select(WhatsAppMessage.id)
            .where(
                WhatsAppMessage.lead_id == lead_id,
                WhatsAppMessage.message_type == MessageType(message_type).value,
                WhatsAppMessage.status.in_(ACTIVE_MESSAGE_STATUSES),
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def has_succeeded_payment(self, session: AsyncSession, lead_id: int) -> bool:
        result = await session.execute(
            select(Transaction.id)
            .where(
                Transaction.lead_id == lead_id,
                Transaction.status == TransactionStatus.SUCCEEDED.value,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _create(
        self,
        session: AsyncSession,
        lead: Lead,
        message_type: MessageType,
        send_after: datetime,
    ) -> WhatsAppMessage:
        message = WhatsAppMessage(
            lead_id=lead.id,
            phone=lead.phone,
            message_type=message_type.value,
            status=MessageStatus.PENDING.value,
            send_after=send_after,
        )
        session.add(message)
        await session.flush()
        return message


_message_queue: Optional[MessageQueueService] = None


def get_message_queue() -> MessageQueueService:
    """Instância global, criada no primeiro uso (lê as settings só aqui)."""
    global _message_queue
    if _message_queue is None:
        _message_queue = MessageQueueService(MessageQueueConfig.from_settings())
    return _message_queue
