from enum import Enum


class DiscountType(Enum):
    PERCENTAGE = "PERCENTAGE"  # value in (0, 100]
    FIXED = "FIXED"            # absolute amount off, total floored at zero
