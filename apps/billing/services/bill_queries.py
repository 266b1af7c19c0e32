"""Read accessors for bills."""

from uuid import UUID

from django.core.exceptions import ValidationError
from django.db.models import Prefetch

from ..exceptions import BillNotFoundError
from ..models import Bill, BillItem


def bill_queryset():
    """Bills with everything a detail view needs, in one round of queries."""
    return Bill.objects.select_related('customer').prefetch_related(
        Prefetch('items', queryset=BillItem.objects.order_by('position')),
        'payments',
        'item_refunds',
    )


def get_bill(*, bill_id: UUID) -> Bill:
    """
    Raises:
        BillNotFoundError: If bill doesn't exist
    """
    try:
        return bill_queryset().get(id=bill_id)
    except (Bill.DoesNotExist, ValueError, ValidationError):
        raise BillNotFoundError(f"Bill {bill_id} not found", bill_id=str(bill_id))


def lock_bill(*, bill_id: UUID) -> Bill:
    """
    Fetch a bill and lock its row until the surrounding transaction ends.

    Payments, cancellation and refunds on one bill serialize on this lock.

    Raises:
        BillNotFoundError: If bill doesn't exist
    """
    try:
        return Bill.objects.select_for_update().get(id=bill_id)
    except (Bill.DoesNotExist, ValueError, ValidationError):
        raise BillNotFoundError(f"Bill {bill_id} not found", bill_id=str(bill_id))


def list_bills(
    *,
    status=None,
    payment_status=None,
    customer_id=None,
    cashier=None,
    date_from=None,
    date_to=None,
):
    """
    Filtered bills, newest first.

    Args:
        status: Lifecycle status
        payment_status: pending / partial / paid
        customer_id: Customer UUID
        cashier: Case-insensitive substring of the cashier name
        date_from: Earliest bill date (inclusive)
        date_to: Latest bill date (inclusive)

    Returns:
        QuerySet[Bill]
    """
    queryset = bill_queryset()

    if status:
        queryset = queryset.filter(status=status)
    if payment_status:
        queryset = queryset.filter(payment_status=payment_status)
    if customer_id:
        queryset = queryset.filter(customer_id=customer_id)
    if cashier:
        queryset = queryset.filter(cashier__icontains=cashier)
    if date_from:
        queryset = queryset.filter(bill_date__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(bill_date__date__lte=date_to)

    return queryset.order_by('-bill_date', '-created_at')
