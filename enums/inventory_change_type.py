from enum import Enum


class InventoryChangeType(Enum):
    """
    Reason class of an inventory ledger entry.

    Sign convention of the logged quantity: negative = stock leaving,
    positive = stock coming back.
    """
    SALE = "SALE"              # Sold through an order (negative)
    RETURN = "RETURN"          # Returned by a cancelled order (positive)
    RESTOCK = "RESTOCK"        # New inventory received (positive)
    ADJUSTMENT = "ADJUSTMENT"  # Reservation hold/release or manual correction (either sign)
