"""Enums - valores fixos que se repetem no sistema."""

from enum import Enum


class LeadStage(str, Enum):
    """Etapa do lead no funil."""
    NEW = "NOVO"                # Acabou de se cadastrar
    IN_CONTACT = "EM_CONTATO"   # Gerou pagamento / conversando
    PURCHASED = "COMPRADO"      # Pagamento confirmado
    REJECTED = "RECUSADO"       # Desistiu


class PaymentMethod(str, Enum):
    """Meio de pagamento da transação."""
    PIX = "pix"
    CARD = "card"


class TransactionStatus(str, Enum):
    """
    Status da transação (mesmos valores do Stripe).

    Só os webhooks do provedor e o job de PIX expirado mudam esse status.
    """
    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    PROCESSING = "processing"
    REQUIRES_ACTION = "requires_action"
    REQUIRES_CAPTURE = "requires_capture"
    SUCCEEDED = "succeeded"
    CANCELED = "canceled"

    @property
    def is_final(self) -> bool:
        return self in (TransactionStatus.SUCCEEDED, TransactionStatus.CANCELED)

    def can_transition_to(self, target: "TransactionStatus") -> bool:
        if self is TransactionStatus.SUCCEEDED:
            return False
        if self is TransactionStatus.CANCELED:
            # PIX pago depois de expirar: o provedor confirma, vale o pagamento
            return target is TransactionStatus.SUCCEEDED
        return target is not self


class MeetingStatus(str, Enum):
    """Estados possíveis de uma reunião."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MessageType(str, Enum):
    """Tipos de mensagem da fila de WhatsApp (conjunto fechado)."""
    WELCOME = "LEAD_WELCOME"
    PAYMENT_ABANDONED = "PAYMENT_ABANDONED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"


class MessageStatus(str, Enum):
    """
    Status de uma mensagem na fila.

    PENDING -> SENT | CANCELLED | FAILED. Os três últimos são finais.
    """
    PENDING = "PENDING"
    SENT = "SENT"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"

    @property
    def is_final(self) -> bool:
        return self is not MessageStatus.PENDING

    def can_transition_to(self, target: "MessageStatus") -> bool:
        return target in _MESSAGE_TRANSITIONS[self]


_MESSAGE_TRANSITIONS = {
    MessageStatus.PENDING: frozenset({
        MessageStatus.SENT,
        MessageStatus.CANCELLED,
        MessageStatus.FAILED,
    }),
    MessageStatus.SENT: frozenset(),
    MessageStatus.CANCELLED: frozenset(),
    MessageStatus.FAILED: frozenset(),
}


# Status que contam para "já existe mensagem desse tipo" (sem duplicidade)
ACTIVE_MESSAGE_STATUSES = (MessageStatus.PENDING.value, MessageStatus.SENT.value)

# Status de PIX ainda aguardando pagamento
AWAITING_PIX_STATUSES = (
    TransactionStatus.PROCESSING.value,
    TransactionStatus.REQUIRES_PAYMENT_METHOD.value,
)
