from enum import Enum


class InvalidDiscountPolicy(Enum):
    SKIP = "skip"      # Place the order without the discount
    REJECT = "reject"  # Abort order placement with the discount error
