"""
HEALTH CHECK ENDPOINTS
======================
Monitora saúde do sistema em tempo real.

Usado por:
- UptimeRobot (monitoramento externo)
- Debugging da fila de WhatsApp
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database import get_db
from src.infrastructure.scheduler import get_scheduler_status
from src.domain.entities import WhatsAppMessage, MessageStatus, as_utc
from src.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check simples e rápido.

    Retorna 200 se tudo OK, 503 se o banco não responde.

    Verificações:
    - ✅ Database conectado
    - ✅ Tamanho da fila de WhatsApp (e a pendência mais antiga)
    """
    checks = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail={
            "status": "unhealthy",
            "checks": {"database": f"error: {str(e)}"},
        })

    now = datetime.now(timezone.utc)
    result = await db.execute(
        select(func.count(WhatsAppMessage.id), func.min(WhatsAppMessage.send_after))
        .where(WhatsAppMessage.status == MessageStatus.PENDING.value)
    )
    pending_count, oldest_send_after = result.one()

    queue = {"pending": pending_count or 0}
    if oldest_send_after is not None:
        overdue = now - as_utc(oldest_send_after)
        queue["oldest_overdue_minutes"] = max(0, int(overdue.total_seconds() // 60))
    checks["whatsapp_queue"] = queue

    checks["scheduler"] = get_scheduler_status()
    checks["timestamp"] = now.isoformat()
    checks["environment"] = settings.environment

    return {
        "status": "healthy",
        "checks": checks,
    }
