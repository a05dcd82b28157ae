"""Entidades do domínio."""
from .base import Base, TimestampMixin, utcnow, as_utc
from .enums import (
    LeadStage,
    PaymentMethod,
    TransactionStatus,
    MeetingStatus,
    MessageType,
    MessageStatus,
    ACTIVE_MESSAGE_STATUSES,
    AWAITING_PIX_STATUSES,
)
from .lead import Lead
from .transaction import Transaction
from .meeting import Meeting
from .whatsapp_message import WhatsAppMessage

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "utcnow",
    "as_utc",
    # Enums
    "LeadStage",
    "PaymentMethod",
    "TransactionStatus",
    "MeetingStatus",
    "MessageType",
    "MessageStatus",
    "ACTIVE_MESSAGE_STATUSES",
    "AWAITING_PIX_STATUSES",
    # Models
    "Lead",
    "Transaction",
    "Meeting",
    "WhatsAppMessage",
]
