"""
Bill lifecycle state machine.

    draft ──> completed ──> cancelled
      │           ├──────> partial_refund ──> refunded
      │           └──────> refunded              ^
      └─> cancelled         partial_refund ──────┘ (and to itself)

``cancelled`` and ``refunded`` are terminal.
"""

from ..exceptions import InvalidStateTransitionError
from ..models import BillStatus


ALLOWED_TRANSITIONS = {
    BillStatus.DRAFT: {BillStatus.COMPLETED, BillStatus.CANCELLED},
    BillStatus.COMPLETED: {
        BillStatus.CANCELLED,
        BillStatus.REFUNDED,
        BillStatus.PARTIAL_REFUND,
    },
    BillStatus.PARTIAL_REFUND: {BillStatus.PARTIAL_REFUND, BillStatus.REFUNDED},
    BillStatus.CANCELLED: set(),
    BillStatus.REFUNDED: set(),
}


def can_transition(current, target):
    return target in ALLOWED_TRANSITIONS.get(current, set())


def validate_transition(*, bill, target):
    """
    Raises:
        InvalidStateTransitionError: If ``bill.status -> target`` isn't allowed
    """
    if not can_transition(bill.status, target):
        raise InvalidStateTransitionError(
            f"Cannot move bill {bill.bill_number} from {bill.status} to {target}",
            bill_id=str(bill.id),
            current=bill.status,
            target=str(target),
        )
