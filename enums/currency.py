from enum import Enum


class Currency(str, Enum):
    ARS = "ARS"
    USD = "USD"
    EUR = "EUR"
