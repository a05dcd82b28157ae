"""Mudança de status de transação com UPDATE condicional."""

import logging
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities import Transaction, TransactionStatus, utcnow
from src.domain.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


async def transition_transaction(
    session: AsyncSession,
    transaction_id: int,
    target: TransactionStatus,
    from_statuses: Iterable[TransactionStatus],
) -> bool:
    """
    Muda o status da transação só se o status atual estiver em `from_statuses`.

    Returns:
        True se a linha foi alterada (False: outro processo já mudou o status)
    """
    allowed = [TransactionStatus(s) for s in from_statuses]
    for current in allowed:
        if not current.can_transition_to(target):
            raise InvalidTransitionError("Transaction", current.value, target.value)

    stmt = (
        update(Transaction)
        .where(
            Transaction.id == transaction_id,
            Transaction.status.in_([s.value for s in allowed]),
        )
        .values(status=target.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    changed = (result.rowcount or 0) == 1

    if changed:
        logger.info(f"[Transaction] {transaction_id} -> {target.value}")

    return changed
