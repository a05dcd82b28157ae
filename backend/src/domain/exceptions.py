"""Exceções do domínio do funil de leads e da fila de WhatsApp."""


class MessageQueueError(Exception):
    """Erro base da fila de mensagens."""


class InvalidTransitionError(MessageQueueError):
    """Transição de status não permitida pela máquina de estados."""

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"{entity}: transição inválida {current} -> {target}")


class TemplateRenderError(MessageQueueError):
    """Não foi possível montar o texto da mensagem (data/hora inválida ou ausente)."""


class LeadNotFoundError(MessageQueueError):
    """Lead não encontrado."""


class TransactionNotFoundError(MessageQueueError):
    """Transação não encontrada."""
