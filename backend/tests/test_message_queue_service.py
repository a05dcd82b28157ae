"""
TESTES - FILA DE MENSAGENS (ESCRITA)
====================================

Sem duplicidade por (lead, tipo), abandono suprimido por pagamento aprovado
e cancelamento em cascata.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from src.domain.entities import (
    Lead,
    MessageStatus,
    MessageType,
    TransactionStatus,
    WhatsAppMessage,
    as_utc,
)
from src.domain.exceptions import InvalidTransitionError
from src.infrastructure.services.message_queue_service import transition_pending
from tests.utils import T0, add_transaction, get_messages


async def _active_count(session, lead_id, message_type):
    return await session.scalar(
        select(func.count(WhatsAppMessage.id)).where(
            WhatsAppMessage.lead_id == lead_id,
            WhatsAppMessage.message_type == message_type.value,
            WhatsAppMessage.status.in_(["PENDING", "SENT"]),
        )
    )


# =============================================================================
# BOAS-VINDAS
# =============================================================================

@pytest.mark.asyncio
async def test_enqueue_welcome_schedules_after_delay(db_session, queue, lead):
    message = await queue.enqueue_welcome(db_session, lead, now=T0)
    await db_session.commit()

    assert message is not None
    assert message.status == MessageStatus.PENDING.value
    assert message.message_type == MessageType.WELCOME.value
    assert message.phone == lead.phone
    assert as_utc(message.send_after) == T0 + timedelta(minutes=2)
    assert message.attempts == 0


@pytest.mark.asyncio
async def test_enqueue_welcome_twice_is_noop(db_session, queue, lead):
    """Cenário 5: segunda chamada não cria nada."""
    first = await queue.enqueue_welcome(db_session, lead, now=T0)
    second = await queue.enqueue_welcome(db_session, lead, now=T0)
    await db_session.commit()

    assert first is not None
    assert second is None
    assert len(await get_messages(db_session, lead.id, MessageType.WELCOME)) == 1


@pytest.mark.asyncio
async def test_enqueue_welcome_skips_when_already_sent(db_session, queue, lead):
    message = await queue.enqueue_welcome(db_session, lead, now=T0)
    message.status = MessageStatus.SENT.value
    await db_session.commit()

    assert await queue.enqueue_welcome(db_session, lead, now=T0) is None
    assert await _active_count(db_session, lead.id, MessageType.WELCOME) == 1


@pytest.mark.asyncio
async def test_enqueue_welcome_allowed_again_after_cancel(db_session, queue, lead):
    await queue.enqueue_welcome(db_session, lead, now=T0)
    await queue.cancel_pending(db_session, lead.id, MessageType.WELCOME)
    again = await queue.enqueue_welcome(db_session, lead, now=T0)
    await db_session.commit()

    assert again is not None
    statuses = [m.status for m in await get_messages(db_session, lead.id, MessageType.WELCOME)]
    assert statuses == ["CANCELLED", "PENDING"]


# =============================================================================
# PAGAMENTO ABANDONADO
# =============================================================================

@pytest.mark.asyncio
async def test_enqueue_abandoned_cancels_pending_welcome(db_session, queue, lead):
    """Cenário 2: tentou pagar -> boas-vindas cancelada, abandono imediato."""
    await queue.enqueue_welcome(db_session, lead, now=T0)
    abandoned = await queue.enqueue_abandoned(db_session, lead, now=T0 + timedelta(seconds=30))
    await db_session.commit()

    assert abandoned is not None
    assert as_utc(abandoned.send_after) == T0 + timedelta(seconds=30)

    welcome = (await get_messages(db_session, lead.id, MessageType.WELCOME))[0]
    assert welcome.status == MessageStatus.CANCELLED.value
    assert welcome.cancel_reason == "payment_attempted"


@pytest.mark.asyncio
async def test_enqueue_abandoned_suppressed_by_succeeded_payment(db_session, queue, lead):
    await add_transaction(db_session, lead, TransactionStatus.SUCCEEDED)
    await queue.enqueue_welcome(db_session, lead, now=T0)

    result = await queue.enqueue_abandoned(db_session, lead, now=T0)
    await db_session.commit()

    assert result is None
    assert await get_messages(db_session, lead.id, MessageType.PAYMENT_ABANDONED) == []
    # Nada foi tocado: boas-vindas continua como estava
    welcome = (await get_messages(db_session, lead.id, MessageType.WELCOME))[0]
    assert welcome.status == MessageStatus.PENDING.value


@pytest.mark.asyncio
async def test_enqueue_abandoned_is_idempotent(db_session, queue, lead):
    await queue.enqueue_abandoned(db_session, lead, now=T0)
    second = await queue.enqueue_abandoned(db_session, lead, now=T0)
    await db_session.commit()

    assert second is None
    assert await _active_count(db_session, lead.id, MessageType.PAYMENT_ABANDONED) == 1


# =============================================================================
# PAGAMENTO CONFIRMADO
# =============================================================================

@pytest.mark.asyncio
async def test_enqueue_confirmed_cancels_welcome_and_abandoned(db_session, queue, lead):
    """Cenário 3: confirmação cancela o que estava pendente."""
    await queue.enqueue_welcome(db_session, lead, now=T0)
    welcome = (await get_messages(db_session, lead.id, MessageType.WELCOME))[0]
    # O abandono cancela a primeira boas-vindas; agenda outra para a confirmação cancelar
    await queue.enqueue_abandoned(db_session, lead, now=T0 + timedelta(seconds=30))
    welcome_again = await queue.enqueue_welcome(db_session, lead, now=T0)

    confirmed = await queue.enqueue_confirmed(db_session, lead, now=T0 + timedelta(seconds=40))
    await db_session.commit()

    assert confirmed is not None
    assert confirmed.status == MessageStatus.PENDING.value

    for message in await get_messages(db_session, lead.id):
        if message.message_type == MessageType.PAYMENT_CONFIRMED.value:
            continue
        assert message.status == MessageStatus.CANCELLED.value

    refreshed = {m.id: m for m in await get_messages(db_session, lead.id)}
    assert refreshed[welcome.id].cancel_reason == "payment_attempted"
    assert refreshed[welcome_again.id].cancel_reason == "payment_succeeded"


@pytest.mark.asyncio
async def test_enqueue_confirmed_twice_is_noop(db_session, queue, lead):
    await queue.enqueue_confirmed(db_session, lead, now=T0)
    assert await queue.enqueue_confirmed(db_session, lead, now=T0) is None
    await db_session.commit()

    assert await _active_count(db_session, lead.id, MessageType.PAYMENT_CONFIRMED) == 1


@pytest.mark.asyncio
async def test_never_more_than_one_active_per_type(db_session, queue, lead):
    """Qualquer sequência de chamadas mantém no máximo 1 PENDING/SENT por tipo."""
    calls = [
        queue.enqueue_welcome,
        queue.enqueue_welcome,
        queue.enqueue_abandoned,
        queue.enqueue_welcome,
        queue.enqueue_abandoned,
        queue.enqueue_confirmed,
        queue.enqueue_abandoned,
        queue.enqueue_confirmed,
    ]
    for call in calls:
        await call(db_session, lead, now=T0)
        for message_type in MessageType:
            assert await _active_count(db_session, lead.id, message_type) <= 1

    await db_session.commit()


# =============================================================================
# CANCELAMENTO E ESTADOS FINAIS
# =============================================================================

@pytest.mark.asyncio
async def test_cancel_pending_returns_count_and_ignores_other_leads(db_session, queue, lead):
    other = Lead(name="Outra Pessoa", phone="21988887777")
    db_session.add(other)
    await db_session.flush()

    await queue.enqueue_welcome(db_session, lead, now=T0)
    await queue.enqueue_welcome(db_session, other, now=T0)

    assert await queue.cancel_pending(db_session, lead.id, MessageType.WELCOME) == 1
    assert await queue.cancel_pending(db_session, lead.id, MessageType.WELCOME) == 0
    await db_session.commit()

    other_welcome = (await get_messages(db_session, other.id, MessageType.WELCOME))[0]
    assert other_welcome.status == MessageStatus.PENDING.value


@pytest.mark.asyncio
@pytest.mark.parametrize("final_status", [
    MessageStatus.SENT,
    MessageStatus.CANCELLED,
    MessageStatus.FAILED,
])
async def test_final_states_are_never_changed(db_session, queue, lead, final_status):
    message = await queue.enqueue_welcome(db_session, lead, now=T0)
    message.status = final_status.value
    await db_session.commit()

    for target in (MessageStatus.SENT, MessageStatus.CANCELLED, MessageStatus.FAILED):
        changed = await transition_pending(db_session, target, WhatsAppMessage.id == message.id)
        assert changed == 0

    assert await queue.cancel_pending(db_session, lead.id, MessageType.WELCOME) == 0
    await db_session.commit()

    stored = (await get_messages(db_session, lead.id, MessageType.WELCOME))[0]
    assert stored.status == final_status.value


@pytest.mark.asyncio
async def test_transition_back_to_pending_is_rejected(db_session):
    with pytest.raises(InvalidTransitionError):
        await transition_pending(db_session, MessageStatus.PENDING)


def test_message_status_transitions():
    assert MessageStatus.PENDING.can_transition_to(MessageStatus.SENT)
    assert MessageStatus.PENDING.can_transition_to(MessageStatus.CANCELLED)
    assert MessageStatus.PENDING.can_transition_to(MessageStatus.FAILED)
    for final in (MessageStatus.SENT, MessageStatus.CANCELLED, MessageStatus.FAILED):
        assert final.is_final
        assert not any(final.can_transition_to(target) for target in MessageStatus)
