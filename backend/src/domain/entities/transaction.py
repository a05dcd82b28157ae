"""
Model: Transaction (Pagamento)
==============================

Uma tentativa de pagamento (PIX ou cartão) de um lead.

O status segue os valores do Stripe e só muda por:
- webhooks do provedor (OpenPix / Stripe)
- job de PIX expirado (processing -> canceled)
"""

from datetime import date, time
from decimal import Decimal
from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, ForeignKey, Date, Time, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .enums import TransactionStatus

if TYPE_CHECKING:
    from .lead import Lead
    from .meeting import Meeting


class Transaction(Base, TimestampMixin):
    """Tentativa de pagamento vinculada a um lead."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    lead_id: Mapped[int] = mapped_column(
        ForeignKey("leads.id", ondelete="CASCADE"),
        index=True,
        nullable=False
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(30),
        default=TransactionStatus.REQUIRES_PAYMENT_METHOD.value,
        nullable=False,
        index=True
    )

    # Horário escolhido pelo lead no checkout
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date)
    scheduled_time: Mapped[Optional[time]] = mapped_column(Time)

    lead: Mapped["Lead"] = relationship(back_populates="transactions")
    meeting: Mapped[Optional["Meeting"]] = relationship(back_populates="transaction")

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} {self.payment_method} status={self.status}>"
