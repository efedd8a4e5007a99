"""
Status vocabularies stored in the BaaS tables.

Member names are the internal vocabulary; values are what the BaaS rows and
the frontend carry.
"""
from enum import Enum


class Role(str, Enum):
    CUSTOMER = "cliente"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "ativa"
    INACTIVE = "inativa"
    SUSPENDED = "suspensa"


class PaymentStatus(str, Enum):
    AWAITING_PAYMENT = "aguardando_pagamento"
    PAID = "pago"
    CANCELLED = "cancelado"
    REFUNDED = "reembolsado"


class AccessStatus(str, Enum):
    INACTIVE = "inativo"
    ACTIVE = "ativo"
    EXPIRED = "expirado"


class TrialStatus(str, Enum):
    PENDING = "pendente"
    APPROVED = "aprovado"
    REJECTED = "rejeitado"


# Gateway-confirmed payment status transitions
ALLOWED_PAYMENT_TRANSITIONS = {
    PaymentStatus.AWAITING_PAYMENT: {
        PaymentStatus.PAID,
        PaymentStatus.CANCELLED,
        PaymentStatus.REFUNDED,
    },
    PaymentStatus.PAID: {PaymentStatus.REFUNDED, PaymentStatus.CANCELLED},
    PaymentStatus.CANCELLED: {PaymentStatus.PAID},
    PaymentStatus.REFUNDED: set(),
}


def can_transition(current: PaymentStatus, new: PaymentStatus) -> bool:
    """True if an order may move from ``current`` to ``new`` payment status."""
    if current == new:
        return True
    return new in ALLOWED_PAYMENT_TRANSITIONS.get(current, set())
