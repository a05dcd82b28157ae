"""Casos de uso da aplicação."""

from .register_lead import register_lead
from .payment_events import start_payment, confirm_payment, expire_payment

__all__ = [
    "register_lead",
    "start_payment",
    "confirm_payment",
    "expire_payment",
]
