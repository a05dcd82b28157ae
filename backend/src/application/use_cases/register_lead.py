"""
CASO DE USO: CADASTRAR LEAD
===========================
Cria o lead e agenda a mensagem de boas-vindas.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.entities import Lead, LeadStage
from src.infrastructure.services.message_queue_service import MessageQueueService, get_message_queue

logger = logging.getLogger(__name__)


async def register_lead(
    session: AsyncSession,
    name: str,
    phone: str,
    referral_code: Optional[str] = None,
    queue: Optional[MessageQueueService] = None,
    now: Optional[datetime] = None,
) -> Lead:
    queue = queue or get_message_queue()
    name = (name or "").strip()
    phone = (phone or "").strip()
    if not name or not phone:
        raise ValueError("Nome e WhatsApp são obrigatórios")

    lead = Lead(
        name=name,
        phone=phone,
        referral_code=referral_code,
        stage=LeadStage.NEW.value,
    )
    session.add(lead)
    await session.flush()

    logger.info(f"[Lead] Lead {lead.id} cadastrado")

    await queue.enqueue_welcome(session, lead, now=now)
    return lead
