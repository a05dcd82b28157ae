#!/usr/bin/env python3
"""
SCRIPT DE INSPEÇÃO DA FILA DE WHATSAPP
======================================

Mostra as últimas mensagens da fila e quantas ainda estão pendentes.

Uso:
    python3 scripts/check_queue.py
"""

import asyncio
import sys
from pathlib import Path

# Adiciona o diretório raiz ao path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from src.domain.entities import WhatsAppMessage, MessageStatus
from src.infrastructure.database import async_session, engine

STATUS_ICONS = {
    MessageStatus.PENDING.value: "⏳",
    MessageStatus.SENT.value: "✅",
    MessageStatus.CANCELLED.value: "🚫",
    MessageStatus.FAILED.value: "❌",
}


async def check_queue(limit: int = 10) -> int:
    async with async_session() as session:
        result = await session.execute(
            select(WhatsAppMessage)
            .options(selectinload(WhatsAppMessage.lead))
            .order_by(WhatsAppMessage.created_at.desc(), WhatsAppMessage.id.desc())
            .limit(limit)
        )
        messages = result.scalars().all()

        print(f"\n📋 Últimas {len(messages)} mensagens na fila:\n")

        for message in messages:
            icon = STATUS_ICONS.get(message.status, "•")
            print(f"{icon} #{message.id} {message.message_type} [{message.status}]")
            print(f"   Lead: {message.lead.name} ({message.lead.phone})")
            print(f"   Enviar após: {message.send_after.isoformat()}")
            if message.sent_at:
                print(f"   Enviada em: {message.sent_at.isoformat()}")
            if message.cancel_reason:
                print(f"   Motivo do cancelamento: {message.cancel_reason}")
            if message.error:
                print(f"   Erro: {message.error}")
            print()

        pending = await session.scalar(
            select(func.count(WhatsAppMessage.id))
            .where(WhatsAppMessage.status == MessageStatus.PENDING.value)
        )

    print(f"⏳ Mensagens pendentes: {pending or 0}")
    return pending or 0


async def main():
    try:
        await check_queue()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
