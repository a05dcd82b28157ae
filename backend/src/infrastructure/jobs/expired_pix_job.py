"""
JOB DE PIX EXPIRADO
===================

Backup para quando o webhook de expiração da OpenPix não chega.

RODA: a cada 5-10 min (cron-job.org chamando /api/cron/check-expired-pix,
ou o scheduler interno).

Busca PIX em processing/requires_payment_method criados há pelo menos
16 min (expira em 15 min + 1 de folga), marca como canceled e agenda a
mensagem de pagamento abandonado.

O cancelamento da transação é o efeito principal e é commitado antes de
agendar a mensagem: falha ao agendar conta como erro mas não desfaz o
cancelamento.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from src.domain.entities import (
    Lead,
    Transaction,
    PaymentMethod,
    TransactionStatus,
    AWAITING_PIX_STATUSES,
    as_utc,
    utcnow,
)
from src.infrastructure.database import async_session
from src.infrastructure.services.message_queue_service import MessageQueueService
from src.infrastructure.services.queue_config import MessageQueueConfig
from src.infrastructure.services.transaction_status_service import transition_transaction

logger = logging.getLogger(__name__)


class ExpiredPixJob:
    """Cancela PIX vencidos e agenda a mensagem de abandono."""

    def __init__(
        self,
        session_factory: async_sessionmaker = async_session,
        queue: Optional[MessageQueueService] = None,
        config: Optional[MessageQueueConfig] = None,
    ):
        self.session_factory = session_factory
        self.config = config or MessageQueueConfig.from_settings()
        self.queue = queue or MessageQueueService(self.config)

    async def sweep_expired(
        self,
        now: Optional[datetime] = None,
        batch_limit: Optional[int] = None,
    ) -> dict:
        now = now or utcnow()
        limit = batch_limit if batch_limit is not None else self.config.expired_pix_batch_limit
        grace_minutes = int(self.config.pix_expiry_grace.total_seconds() // 60)
        cutoff = now - self.config.pix_expiry_grace

        results = {
            "checked": 0,
            "expired": 0,
            "queued": 0,
            "errors": 0,
        }

        async with self.session_factory() as session:
            pending = await session.execute(
                select(Transaction.id, Transaction.lead_id, Transaction.created_at)
                .where(
                    Transaction.payment_method == PaymentMethod.PIX.value,
                    Transaction.status.in_(AWAITING_PIX_STATUSES),
                    Transaction.created_at <= cutoff,
                )
                .order_by(Transaction.created_at.asc(), Transaction.id.asc())
                .limit(limit)
            )
            rows = pending.all()

            logger.info(f"[Check-Expired-PIX] {len(rows)} PIX pendentes encontrados")

            for transaction_id, lead_id, created_at in rows:
                results["checked"] += 1

                # Não confia só no filtro da query
                elapsed = now - as_utc(created_at)
                minutes_since_creation = int(elapsed.total_seconds() // 60)
                if minutes_since_creation < grace_minutes:
                    continue

                # Erro de banco aqui é sistêmico: aborta o job inteiro
                expired = await transition_transaction(
                    session,
                    transaction_id,
                    TransactionStatus.CANCELED,
                    from_statuses=AWAITING_PIX_STATUSES,
                )
                await session.commit()

                if not expired:
                    continue

                results["expired"] += 1
                logger.info(
                    f"[Check-Expired-PIX] Transação {transaction_id} expirada "
                    f"(criada há {minutes_since_creation} min)"
                )

                try:
                    lead = await session.get(Lead, lead_id)
                    message = await self.queue.enqueue_abandoned(session, lead, now=now)
                    await session.commit()
                except Exception as e:
                    await session.rollback()
                    logger.error(f"[Check-Expired-PIX] Erro ao agendar abandono do lead {lead_id}: {e}")
                    results["errors"] += 1
                    continue

                if message is not None:
                    results["queued"] += 1

        logger.info(f"[Check-Expired-PIX] Resultado: {results}")
        return results


_expired_pix_job: Optional[ExpiredPixJob] = None


def get_expired_pix_job() -> ExpiredPixJob:
    global _expired_pix_job
    if _expired_pix_job is None:
        _expired_pix_job = ExpiredPixJob()
    return _expired_pix_job


# Função para scheduler
async def run_expired_pix_job() -> dict:
    """Função que o scheduler vai chamar."""
    return await get_expired_pix_job().sweep_expired()
