"""
CASO DE USO: EVENTOS DE PAGAMENTO
=================================

Pontos de entrada chamados pelo checkout e pelos webhooks dos provedores
(OpenPix / Stripe). A integração com o provedor fica fora daqui: estas
funções só aplicam o efeito no funil e na fila de WhatsApp.

- start_payment: lead gerou PIX/cartão -> abandono agendado (cancela boas-vindas)
- confirm_payment: pagamento aprovado -> reunião + COMPRADO + confirmação
- expire_payment: provedor avisou que o PIX expirou -> canceled + abandono

Todas podem ser chamadas de novo com os mesmos dados (webhook reentregue)
sem duplicar reunião nem mensagem.

Não fazem commit: quem chama controla a transação.
"""

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.domain.entities import (
    Lead,
    Meeting,
    MeetingStatus,
    Transaction,
    LeadStage,
    PaymentMethod,
    TransactionStatus,
    utcnow,
)
from src.domain.exceptions import LeadNotFoundError, TransactionNotFoundError
from src.infrastructure.services.message_queue_service import MessageQueueService, get_message_queue
from src.infrastructure.services.transaction_status_service import transition_transaction

logger = logging.getLogger(__name__)

# Status a partir dos quais um pagamento ainda pode ser aprovado/expirado
OPEN_STATUSES = [
    s for s in TransactionStatus if not s.is_final
]


async def start_payment(
    session: AsyncSession,
    lead_id: int,
    amount: Decimal,
    payment_method: PaymentMethod,
    scheduled_date: Optional[date] = None,
    scheduled_time: Optional[time] = None,
    queue: Optional[MessageQueueService] = None,
    now: Optional[datetime] = None,
) -> Transaction:
    queue = queue or get_message_queue()
    lead = await session.get(Lead, lead_id)
    if lead is None:
        raise LeadNotFoundError(f"Lead {lead_id} não encontrado")

    method = PaymentMethod(payment_method)
    initial_status = (
        TransactionStatus.PROCESSING if method is PaymentMethod.PIX
        else TransactionStatus.REQUIRES_PAYMENT_METHOD
    )

    transaction = Transaction(
        lead_id=lead.id,
        amount=amount,
        payment_method=method.value,
        status=initial_status.value,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
    )
    if now is not None:
        transaction.created_at = now
    session.add(transaction)

    if lead.stage == LeadStage.NEW.value:
        lead.stage = LeadStage.IN_CONTACT.value

    await session.flush()
    logger.info(f"[Payment] Transação {transaction.id} ({method.value}) criada para lead {lead.id}")

    await queue.enqueue_abandoned(session, lead, now=now)
    return transaction


async def confirm_payment(
    session: AsyncSession,
    transaction_id: int,
    queue: Optional[MessageQueueService] = None,
    now: Optional[datetime] = None,
) -> Optional[Meeting]:
    """Pagamento aprovado. Retorna a reunião (criada ou já existente)."""
    queue = queue or get_message_queue()
    transaction = await _get_transaction(session, transaction_id)

    if transaction.status != TransactionStatus.SUCCEEDED.value:
        await transition_transaction(
            session,
            transaction.id,
            TransactionStatus.SUCCEEDED,
            from_statuses=OPEN_STATUSES + [TransactionStatus.CANCELED],
        )

    result = await session.execute(
        select(Meeting).where(Meeting.transaction_id == transaction.id)
    )
    meeting = result.scalar_one_or_none()

    if meeting is None and (transaction.scheduled_date is None or transaction.scheduled_time is None):
        # Sem horário escolhido: a confirmação vai falhar no disparo (sem reunião)
        logger.warning(f"[Payment] Transação {transaction.id} sem data/hora, reunião não criada")
    elif meeting is None:
        meeting = Meeting(
            transaction_id=transaction.id,
            lead_id=transaction.lead_id,
            meeting_date=transaction.scheduled_date,
            meeting_time=transaction.scheduled_time,
            status=MeetingStatus.SCHEDULED.value,
        )
        session.add(meeting)
        await session.flush()
        logger.info(f"[Payment] Reunião criada para transação {transaction.id}")

    await session.execute(
        update(Lead)
        .where(Lead.id == transaction.lead_id)
        .values(stage=LeadStage.PURCHASED.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    logger.info(f"[Payment] Lead {transaction.lead_id} atualizado para COMPRADO")

    await queue.enqueue_confirmed(session, transaction.lead, now=now)
    return meeting


async def expire_payment(
    session: AsyncSession,
    transaction_id: int,
    queue: Optional[MessageQueueService] = None,
    now: Optional[datetime] = None,
) -> bool:
    """
    Provedor avisou que a cobrança expirou.

    Returns:
        True se a transação foi cancelada agora
    """
    queue = queue or get_message_queue()
    transaction = await _get_transaction(session, transaction_id)

    canceled = await transition_transaction(
        session,
        transaction.id,
        TransactionStatus.CANCELED,
        from_statuses=OPEN_STATUSES,
    )

    if canceled:
        await queue.enqueue_abandoned(session, transaction.lead, now=now)

    return canceled


async def _get_transaction(session: AsyncSession, transaction_id: int) -> Transaction:
    result = await session.execute(
        select(Transaction)
        .options(selectinload(Transaction.lead))
        .where(Transaction.id == transaction_id)
        .execution_options(populate_existing=True)
    )
    transaction = result.scalar_one_or_none()
    if transaction is None:
        raise TransactionNotFoundError(f"Transação {transaction_id} não encontrada")
    return transaction
