"""Model: Meeting - reunião criada uma única vez por transação paga."""

from datetime import date, time
from typing import TYPE_CHECKING
from sqlalchemy import String, ForeignKey, Date, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .enums import MeetingStatus

if TYPE_CHECKING:
    from .lead import Lead
    from .transaction import Transaction


class Meeting(Base, TimestampMixin):
    __tablename__ = "meetings"

    id: Mapped[int] = mapped_column(primary_key=True)
    # unique: no máximo uma reunião por transação
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )
    lead_id: Mapped[int] = mapped_column(
        ForeignKey("leads.id", ondelete="CASCADE"),
        index=True,
        nullable=False
    )

    meeting_date: Mapped[date] = mapped_column(Date, nullable=False)
    meeting_time: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=MeetingStatus.SCHEDULED.value)

    lead: Mapped["Lead"] = relationship(back_populates="meetings")
    transaction: Mapped["Transaction"] = relationship(back_populates="meeting")
