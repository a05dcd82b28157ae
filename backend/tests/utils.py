"""Helpers compartilhados pelos testes."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select

from src.domain.entities import Transaction, TransactionStatus, WhatsAppMessage

# 17/10/2025 13:00 UTC = 10:00 em São Paulo ("bom dia")
T0 = datetime(2025, 10, 17, 13, 0, tzinfo=timezone.utc)


async def get_messages(session, lead_id, message_type=None):
    """Mensagens do lead relidas do banco (UPDATEs em massa não sincronizam a sessão)."""
    query = (
        select(WhatsAppMessage)
        .where(WhatsAppMessage.lead_id == lead_id)
        .execution_options(populate_existing=True)
    )
    if message_type is not None:
        query = query.where(WhatsAppMessage.message_type == message_type.value)
    result = await session.execute(query.order_by(WhatsAppMessage.id))
    return result.scalars().all()


async def add_transaction(session, lead, status: TransactionStatus, method="pix", created_at=None):
    transaction = Transaction(
        lead_id=lead.id,
        amount=Decimal("97.00"),
        payment_method=method,
        status=status.value,
    )
    if created_at is not None:
        transaction.created_at = created_at
    session.add(transaction)
    await session.commit()
    return transaction
