"""
SCHEDULER DE JOBS PERIÓDICOS
=============================

Alternativa ao cron externo (cron-job.org): roda os mesmos jobs dentro do
processo da API. Só é ligado com SCHEDULER_ENABLED=true.

JOBS CONFIGURADOS:
- Disparo da fila de WhatsApp: a cada 2 min
- PIX expirado: a cada 5 min

TECNOLOGIA: APScheduler (AsyncIOScheduler)
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.config import Settings, get_settings

logger = logging.getLogger(__name__)

MESSAGE_DISPATCH_JOB_ID = "message_dispatch_job"
EXPIRED_PIX_JOB_ID = "expired_pix_job"

# Instância global do scheduler
scheduler: Optional[AsyncIOScheduler] = None


def create_scheduler(settings: Optional[Settings] = None) -> AsyncIOScheduler:
    """
    Cria e configura o scheduler.

    CHAMADO POR: main.py no startup
    """
    global scheduler

    if scheduler is not None:
        logger.warning("⚠️ Scheduler já existe, retornando instância existente")
        return scheduler

    settings = settings or get_settings()

    logger.info("🔧 Criando scheduler...")

    scheduler = AsyncIOScheduler(
        timezone=settings.business_timezone,
        job_defaults={
            "coalesce": True,  # Agrupa execuções perdidas
            "max_instances": 1,  # Só uma instância por vez
            "misfire_grace_time": 60,
        }
    )

    _register_message_dispatch_job(scheduler, settings.dispatch_interval_minutes)
    _register_expired_pix_job(scheduler, settings.expired_pix_interval_minutes)

    logger.info("✅ Scheduler criado com sucesso")

    return scheduler


def _register_message_dispatch_job(sched: AsyncIOScheduler, minutes: int):
    from src.infrastructure.jobs.message_dispatch_job import run_message_dispatch_job

    sched.add_job(
        run_message_dispatch_job,
        trigger=IntervalTrigger(minutes=minutes),
        id=MESSAGE_DISPATCH_JOB_ID,
        name="Disparo da fila de WhatsApp",
        replace_existing=True,
    )

    logger.info(f"📅 Job registrado: Disparo da fila de WhatsApp (a cada {minutes} min)")


def _register_expired_pix_job(sched: AsyncIOScheduler, minutes: int):
    from src.infrastructure.jobs.expired_pix_job import run_expired_pix_job

    sched.add_job(
        run_expired_pix_job,
        trigger=IntervalTrigger(minutes=minutes),
        id=EXPIRED_PIX_JOB_ID,
        name="PIX expirado",
        replace_existing=True,
    )

    logger.info(f"📅 Job registrado: PIX expirado (a cada {minutes} min)")


def start_scheduler():
    """
    Inicia o scheduler.

    CHAMADO POR: main.py no startup (depois de create_scheduler)
    """
    if scheduler is None:
        logger.error("❌ Scheduler não foi criado. Chame create_scheduler() primeiro.")
        return

    if scheduler.running:
        logger.warning("⚠️ Scheduler já está rodando")
        return

    scheduler.start()
    logger.info("🚀 Scheduler iniciado!")

    for job in scheduler.get_jobs():
        logger.info(f"   - {job.name} (próxima execução: {job.next_run_time})")


def stop_scheduler():
    """
    Para o scheduler.

    CHAMADO POR: main.py no shutdown
    """
    global scheduler

    if scheduler is None:
        return

    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("🛑 Scheduler parado")

    scheduler = None


def get_scheduler_status() -> dict:
    """Status do scheduler (usado no health check)."""
    if scheduler is None:
        return {"enabled": False, "running": False, "jobs": []}

    return {
        "enabled": True,
        "running": scheduler.running,
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
            }
            for job in scheduler.get_jobs()
        ],
    }
