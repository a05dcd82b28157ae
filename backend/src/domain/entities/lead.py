# backend/src/domain/entities/lead.py

from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .enums import LeadStage

if TYPE_CHECKING:
    from .transaction import Transaction
    from .meeting import Meeting
    from .whatsapp_message import WhatsAppMessage


class Lead(Base, TimestampMixin):
    __tablename__ = "leads"

    # ===============================
    # IDENTIDADE
    # ===============================
    id: Mapped[int] = mapped_column(primary_key=True)

    # ===============================
    # DADOS DO LEAD (imutáveis após o cadastro)
    # ===============================
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    referral_code: Mapped[Optional[str]] = mapped_column(String(50), index=True)

    # ===============================
    # FUNIL
    # ===============================
    stage: Mapped[str] = mapped_column(
        String(20), default=LeadStage.NEW.value, nullable=False
    )

    # ===============================
    # RELACIONAMENTOS
    # ===============================
    transactions: Mapped[List["Transaction"]] = relationship(back_populates="lead")
    meetings: Mapped[List["Meeting"]] = relationship(back_populates="lead")
    whatsapp_messages: Mapped[List["WhatsAppMessage"]] = relationship(back_populates="lead")

    def __repr__(self) -> str:
        return f"<Lead id={self.id} stage={self.stage}>"
