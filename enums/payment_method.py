from enum import Enum


class PaymentMethod(Enum):
    MERCADO_PAGO = "MERCADO_PAGO"
    RAPIPAGO = "RAPIPAGO"
    PAGO_FACIL = "PAGO_FACIL"
    CREDIT_CARD = "CREDIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
