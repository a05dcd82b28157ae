"""
JOB DE DISPARO DA FILA DE WHATSAPP
==================================

Envia as mensagens PENDING cujo send_after já passou.

RODA: a cada ~2 min (cron-job.org chamando /api/cron/process-messages,
ou o scheduler interno).

Para cada mensagem (mais antigas primeiro, no máximo `batch_limit`):
1. Reivindica a linha com um lease (locked_until = now + dispatch_lease):
   enquanto o lease vale, nenhuma outra execução seleciona ou reivindica a
   mensagem, nem a que começou durante o envio desta
2. Reavalia se ainda faz sentido enviar com o estado ATUAL do lead
   (o pagamento pode ter acontecido depois do agendamento)
3. Monta o texto; sem dados (ex: confirmação sem reunião) -> FAILED
4. Envia pelo WAHA: sucesso -> SENT, falha -> FAILED (sem retry automático)

Erro numa mensagem nunca derruba as outras. Só erro de banco aborta o job.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from src.domain.entities import (
    Meeting,
    Transaction,
    WhatsAppMessage,
    MessageStatus,
    MessageType,
    TransactionStatus,
    utcnow,
)
from src.domain.exceptions import TemplateRenderError
from src.domain.services.message_templates import render_message
from src.infrastructure.database import async_session
from src.infrastructure.services.message_queue_service import transition_pending
from src.infrastructure.services.queue_config import MessageQueueConfig
from src.infrastructure.services.waha_service import get_waha_service

logger = logging.getLogger(__name__)

SENT = "sent"
FAILED = "failed"
CANCELLED = "cancelled"
SKIPPED = "skipped"


class MessageDispatchJob:
    """Processa a fila de mensagens (um lote por execução)."""

    def __init__(
        self,
        session_factory: async_sessionmaker = async_session,
        sender=None,
        config: Optional[MessageQueueConfig] = None,
    ):
        self.session_factory = session_factory
        self.sender = sender or get_waha_service()
        self.config = config or MessageQueueConfig.from_settings()

    async def process_due(
        self,
        now: Optional[datetime] = None,
        batch_limit: Optional[int] = None,
    ) -> dict:
        now = now or utcnow()
        limit = batch_limit if batch_limit is not None else self.config.dispatch_batch_limit

        results = {
            "processed": 0,
            "sent": 0,
            "failed": 0,
            "cancelled": 0,
            "skipped": 0,
        }

        async with self.session_factory() as session:
            pending = await session.execute(
                select(WhatsAppMessage)
                .options(selectinload(WhatsAppMessage.lead))
                .where(
                    WhatsAppMessage.status == MessageStatus.PENDING.value,
                    WhatsAppMessage.send_after <= now,
                    _lease_free(now),
                )
                .order_by(WhatsAppMessage.send_after.asc(), WhatsAppMessage.id.asc())
                .limit(limit)
            )
            messages = pending.scalars().all()

            logger.info(f"[Dispatch] Processando {len(messages)} mensagens pendentes")

            for message in messages:
                results["processed"] += 1
                outcome = await self._process_message(session, message, now)
                await session.commit()
                results[outcome] += 1

        logger.info(f"[Dispatch] Resultado: {results}")
        return results

    # =========================================================================
    # UMA MENSAGEM
    # =========================================================================

    async def _process_message(
        self,
        session: AsyncSession,
        message: WhatsAppMessage,
        now: datetime,
    ) -> str:
        if not await self._claim(session, message, now):
            logger.info(f"[Dispatch] Mensagem {message.id} já está com outro processo")
            return SKIPPED

        try:
            reason = await self.cancellation_reason(session, message)
            if reason:
                changed = await transition_pending(
                    session,
                    MessageStatus.CANCELLED,
                    WhatsAppMessage.id == message.id,
                    cancel_reason=reason,
                )
                if changed:
                    logger.info(f"[Dispatch] Mensagem {message.id} cancelada: {reason}")
                    return CANCELLED
                return SKIPPED

            try:
                text = await self._render(session, message, now)
            except TemplateRenderError as e:
                logger.warning(f"[Dispatch] Mensagem {message.id} sem texto: {e}")
                return await self._fail(session, message, str(e))

            result = await self.sender.send_text(message.phone, text)

            if result.success:
                changed = await transition_pending(
                    session,
                    MessageStatus.SENT,
                    WhatsAppMessage.id == message.id,
                    message_text=text,
                    sent_at=now,
                )
                if not changed:
                    # Cancelada pela fila enquanto enviávamos
                    logger.warning(f"[Dispatch] Mensagem {message.id} enviada mas já não estava PENDING")
                    return SKIPPED
                logger.info(f"[Dispatch] Mensagem {message.id} enviada")
                return SENT

            logger.error(f"[Dispatch] Mensagem {message.id} falhou: {result.error}")
            return await self._fail(session, message, result.error or "unknown error")

        except SQLAlchemyError:
            raise

        except Exception as e:
            logger.error(f"[Dispatch] Erro processando mensagem {message.id}: {e}", exc_info=True)
            return await self._fail(session, message, str(e) or e.__class__.__name__)

    async def _claim(self, session: AsyncSession, message: WhatsAppMessage, now: datetime) -> bool:
        """
        Pega o lease da mensagem e incrementa attempts.

        Falha se outra execução tem um lease válido ou mexeu na linha desde a leitura.
        Lease vencido (processo morreu no meio do envio) pode ser retomado.
        """
        stmt = (
            update(WhatsAppMessage)
            .where(
                WhatsAppMessage.id == message.id,
                WhatsAppMessage.status == MessageStatus.PENDING.value,
                WhatsAppMessage.attempts == message.attempts,
                _lease_free(now),
            )
            .values(
                attempts=message.attempts + 1,
                locked_until=now + self.config.dispatch_lease,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        await session.commit()
        return (result.rowcount or 0) == 1

    async def _fail(self, session: AsyncSession, message: WhatsAppMessage, error: str) -> str:
        changed = await transition_pending(
            session,
            MessageStatus.FAILED,
            WhatsAppMessage.id == message.id,
            error=error,
        )
        return FAILED if changed else SKIPPED

    # =========================================================================
    # REVALIDAÇÃO
    # =========================================================================

    async def cancellation_reason(
        self,
        session: AsyncSession,
        message: WhatsAppMessage,
    ) -> Optional[str]:
        """
        Motivo para cancelar a mensagem com o estado atual, ou None.

        - Boas-vindas: qualquer transação do lead cancela
        - Abandonado: transação aprovada cancela
        - Confirmação: nunca cancelada aqui
        - Qualquer tipo: já existe outra mensagem igual SENT
        """
        message_type = MessageType(message.message_type)

        if message_type is MessageType.WELCOME:
            if await self._has_transaction(session, message.lead_id, TransactionStatus.SUCCEEDED):
                return "payment_succeeded"
            if await self._has_transaction(session, message.lead_id):
                return "payment_attempted"

        elif message_type is MessageType.PAYMENT_ABANDONED:
            if await self._has_transaction(session, message.lead_id, TransactionStatus.SUCCEEDED):
                return "payment_succeeded"

        already_sent = await session.execute(
            select(WhatsAppMessage.id)
            .where(
                WhatsAppMessage.lead_id == message.lead_id,
                WhatsAppMessage.message_type == message.message_type,
                WhatsAppMessage.status == MessageStatus.SENT.value,
                WhatsAppMessage.id != message.id,
            )
            .limit(1)
        )
        if already_sent.scalar_one_or_none() is not None:
            return "already_sent"

        return None

    async def _has_transaction(
        self,
        session: AsyncSession,
        lead_id: int,
        status: Optional[TransactionStatus] = None,
    ) -> bool:
        query = select(Transaction.id).where(Transaction.lead_id == lead_id)
        if status is not None:
            query = query.where(Transaction.status == status.value)
        result = await session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    # =========================================================================
    # TEXTO
    # =========================================================================

    async def _render(self, session: AsyncSession, message: WhatsAppMessage, now: datetime) -> str:
        message_type = MessageType(message.message_type)
        lead = message.lead

        if message_type is not MessageType.PAYMENT_CONFIRMED:
            return render_message(message_type, lead.name, now=now, timezone_name=self.config.timezone)

        meeting = await self._latest_meeting(session, message.lead_id)
        if meeting is None:
            raise TemplateRenderError("Nenhuma reunião encontrada para o pagamento confirmado")

        return render_message(
            message_type,
            lead.name,
            meeting_date=meeting.meeting_date,
            meeting_time=meeting.meeting_time,
            now=now,
            timezone_name=self.config.timezone,
        )

    async def _latest_meeting(self, session: AsyncSession, lead_id: int) -> Optional[Meeting]:
        result = await session.execute(
            select(Meeting)
            .where(Meeting.lead_id == lead_id)
            .order_by(Meeting.created_at.desc(), Meeting.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


def _lease_free(now: datetime):
    return or_(
        WhatsAppMessage.locked_until.is_(None),
        WhatsAppMessage.locked_until < now,
    )


_dispatch_job: Optional[MessageDispatchJob] = None


def get_message_dispatch_job() -> MessageDispatchJob:
    global _dispatch_job
    if _dispatch_job is None:
        _dispatch_job = MessageDispatchJob()
    return _dispatch_job


# Função para scheduler
async def run_message_dispatch_job() -> dict:
    """Função que o scheduler vai chamar."""
    return await get_message_dispatch_job().process_due()
