"""
API - Ponto de Entrada
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import get_settings
from src.infrastructure.database import init_db
from src.infrastructure.logging_config import setup_logging
from src.infrastructure.scheduler import create_scheduler, start_scheduler, stop_scheduler

# Routers
from src.api.routes import cron_router, health_router

settings = get_settings()
logger = logging.getLogger(__name__)


# ============================================================
# 🔁 LIFESPAN
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(logging.DEBUG if settings.debug else logging.INFO)
    logger.info("🚀 Iniciando API...")

    await init_db()
    logger.info("✅ Tabelas criadas!")

    if settings.scheduler_enabled:
        create_scheduler(settings)
        start_scheduler()

    yield

    stop_scheduler()
    logger.info("👋 Encerrando API...")


# ============================================================
# FASTAPI APP
# ============================================================
app = FastAPI(
    title="Lead Funnel API",
    description="Captação de leads, pagamentos e fila de WhatsApp",
    version="0.1.0",
    lifespan=lifespan,
)

# ============================================================
# ⭐ CORS
# ============================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================
# ROTAS
# ============================================================
app.include_router(cron_router, prefix="/api")
app.include_router(health_router)


@app.get("/")
async def root():
    return {"status": "online", "version": "0.1.0"}
