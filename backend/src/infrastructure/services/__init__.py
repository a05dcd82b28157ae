"""
INFRASTRUCTURE SERVICES
========================

Serviços de infraestrutura do funil.

Organização:
- Comunicação: WhatsApp (WAHA)
- Fila: agendamento/cancelamento de mensagens
- Pagamentos: mudança de status de transação
"""

# =============================================================================
# COMUNICAÇÃO - WhatsApp (WAHA)
# =============================================================================

from .waha_service import (
    WahaService,
    DeliveryResult,
    format_chat_id,
    get_waha_service,
)

# =============================================================================
# FILA DE MENSAGENS
# =============================================================================

from .queue_config import MessageQueueConfig
from .message_queue_service import (
    MessageQueueService,
    get_message_queue,
    transition_pending,
)

# =============================================================================
# PAGAMENTOS
# =============================================================================

from .transaction_status_service import transition_transaction

# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    # WHATSAPP
    "WahaService",
    "DeliveryResult",
    "format_chat_id",
    "get_waha_service",

    # FILA
    "MessageQueueConfig",
    "MessageQueueService",
    "get_message_queue",
    "transition_pending",

    # PAGAMENTOS
    "transition_transaction",
]
