from enum import Enum


class ReservationStatus(Enum):
    ACTIVE = "ACTIVE"        # Stock held, waiting for checkout resolution
    CONFIRMED = "CONFIRMED"  # Converted into a sale
    RELEASED = "RELEASED"    # Stock returned (checkout failed, cancelled or expired)
