"""
ROTAS DE CRON
=============

Chamadas pelo cron-job.org (GET ou POST) com o CRON_SECRET:
- /api/cron/process-messages  -> a cada ~2 min (disparo da fila de WhatsApp)
- /api/cron/check-expired-pix -> a cada 5-10 min (PIX expirado)

Sempre 200 com os contadores, mesmo se algumas mensagens falharem.
500 só em falha sistêmica (banco fora, por exemplo).
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.api.dependencies import get_dispatch_job, get_pix_job, verify_cron_secret
from src.domain.entities import utcnow
from src.infrastructure.jobs.expired_pix_job import ExpiredPixJob
from src.infrastructure.jobs.message_dispatch_job import MessageDispatchJob

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cron",
    tags=["Cron"],
    dependencies=[Depends(verify_cron_secret)],
)


@router.api_route("/process-messages", methods=["GET", "POST"])
async def process_messages(job: MessageDispatchJob = Depends(get_dispatch_job)):
    now = utcnow()
    try:
        results = await job.process_due(now=now)
    except Exception as e:
        logger.error(f"[Cron] Erro fatal no disparo da fila: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    return {"success": True, "timestamp": now.isoformat(), **results}


@router.api_route("/check-expired-pix", methods=["GET", "POST"])
async def check_expired_pix(job: ExpiredPixJob = Depends(get_pix_job)):
    now = utcnow()
    try:
        results = await job.sweep_expired(now=now)
    except Exception as e:
        logger.error(f"[Check-Expired-PIX] Erro fatal: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    return {"success": True, "timestamp": now.isoformat(), **results}
