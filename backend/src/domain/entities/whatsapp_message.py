"""
Model: WhatsAppMessage (fila de mensagens)
==========================================

Cada linha é uma mensagem agendada para um lead.

Ciclo de vida:
- PENDING: criada pela fila, aguardando send_after (attempts conta as reivindicações
  do job, locked_until é o lease de quem está enviando)
- SENT: enviada pelo job de disparo (message_text e sent_at preenchidos)
- CANCELLED: cancelada pela fila ou pelo job (pagamento mudou o cenário)
- FAILED: erro ao montar o texto ou ao enviar (error preenchido)

Linhas nunca são apagadas: a tabela é o histórico de envios.
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Integer, ForeignKey, Text, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .enums import MessageStatus

if TYPE_CHECKING:
    from .lead import Lead


class WhatsAppMessage(Base, TimestampMixin):
    __tablename__ = "whatsapp_messages"
    __table_args__ = (
        Index("ix_whatsapp_messages_lead_type_status", "lead_id", "message_type", "status"),
        Index("ix_whatsapp_messages_status_send_after", "status", "send_after"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    lead_id: Mapped[int] = mapped_column(
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False
    )

    message_type: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=MessageStatus.PENDING.value, nullable=False
    )

    # Snapshot do telefone no momento do agendamento
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    send_after: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Quantas vezes o job de disparo reivindicou a mensagem
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Lease do job de disparo: até esse instante nenhuma outra execução pega a linha
    locked_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Preenchidos só em estados finais
    message_text: Mapped[Optional[str]] = mapped_column(Text)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    error: Mapped[Optional[str]] = mapped_column(Text)
    cancel_reason: Mapped[Optional[str]] = mapped_column(String(50))

    lead: Mapped["Lead"] = relationship(back_populates="whatsapp_messages")

    def __repr__(self) -> str:
        return f"<WhatsAppMessage id={self.id} {self.message_type} {self.status}>"
