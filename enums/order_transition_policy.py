from enum import Enum


class OrderTransitionPolicy(Enum):
    PERMISSIVE = "permissive"  # Any status -> any status
    STRICT = "strict"          # Only transitions from OrderStateMachine.VALID_TRANSITIONS
