"""
Domain exceptions for billing app.

Every settlement failure is raised as a subclass of ``BillingServiceError``
carrying a stable ``code`` and a structured ``detail`` dict (field,
requested value, available value) so callers can correct their input and
resubmit. Nothing in the billing services retries internally.

Exception Hierarchy:
    BillingServiceError (base)
    ├── InvalidInputError
    ├── ProductNotFoundError
    ├── ProductInactiveError
    ├── InsufficientStockError
    ├── CustomerNotFoundError
    ├── BillNotFoundError
    ├── OverpaymentError
    ├── AlreadySettledError
    ├── CannotCancelPaidBillError
    ├── InvalidStateTransitionError
    └── CollaboratorFailureError

The HTTP layer maps each ``code`` to a status through
``billing_exception_handler`` (configured as DRF's EXCEPTION_HANDLER).
"""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler


class BillingServiceError(Exception):
    """
    Base exception for all billing service errors.

    Catch this in callers that want to handle every business-rule failure
    the same way:

        try:
            bill = finalize_bill(...)
        except BillingServiceError as e:
            return Response({'error': e.code, 'message': str(e)}, status=400)
    """

    code = 'billing_error'
    default_message = 'Billing operation failed.'

    def __init__(self, message=None, **detail):
        super().__init__(message or self.default_message)
        self.detail = detail


class InvalidInputError(BillingServiceError):
    """Malformed quantity, discount, price, points, amount or reason."""

    code = 'invalid_input'
    default_message = 'Invalid input.'

    def __init__(self, message=None, *, field=None, value=None, **detail):
        super().__init__(message, field=field, value=value, **detail)
        self.field = field
        self.value = value


class ProductNotFoundError(BillingServiceError):
    """Requested product does not exist."""

    code = 'product_not_found'
    default_message = 'Product not found.'


class ProductInactiveError(BillingServiceError):
    """Requested product exists but has been deactivated."""

    code = 'product_inactive'
    default_message = 'Product is not available.'


class InsufficientStockError(BillingServiceError):
    """
    One or more cart lines ask for more units than are on hand.

    ``shortfalls`` lists every failing product, not just the first:
    ``[{'product_id', 'product_name', 'requested', 'available'}, ...]``
    """

    code = 'insufficient_stock'
    default_message = 'Insufficient stock for some items.'

    def __init__(self, shortfalls, message=None):
        super().__init__(message, shortfalls=shortfalls)
        self.shortfalls = shortfalls


class CustomerNotFoundError(BillingServiceError):
    """Customer does not exist or is inactive."""

    code = 'customer_not_found'
    default_message = 'Customer not found.'


class BillNotFoundError(BillingServiceError):
    """Bill does not exist."""

    code = 'bill_not_found'
    default_message = 'Bill not found.'


class OverpaymentError(BillingServiceError):
    """Payment amount exceeds the remaining balance."""

    code = 'overpayment'
    default_message = 'Payment amount exceeds remaining balance.'


class AlreadySettledError(BillingServiceError):
    """Bill is already paid in full."""

    code = 'already_settled'
    default_message = 'Bill is already fully paid.'


class CannotCancelPaidBillError(BillingServiceError):
    """Completed and paid bills must go through the refund path."""

    code = 'cannot_cancel_paid_bill'
    default_message = (
        'Cannot cancel a completed and paid bill. Please process a refund instead.'
    )


class InvalidStateTransitionError(BillingServiceError):
    """Bill lifecycle does not allow the requested transition."""

    code = 'invalid_state_transition'
    default_message = 'Invalid state transition for bill.'


class CollaboratorFailureError(BillingServiceError):
    """Product or customer store failed unexpectedly."""

    code = 'collaborator_failure'
    default_message = 'A collaborating store failed.'


ERROR_STATUS_CODES = {
    InvalidInputError.code: status.HTTP_400_BAD_REQUEST,
    ProductNotFoundError.code: status.HTTP_404_NOT_FOUND,
    ProductInactiveError.code: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InsufficientStockError.code: status.HTTP_409_CONFLICT,
    CustomerNotFoundError.code: status.HTTP_404_NOT_FOUND,
    BillNotFoundError.code: status.HTTP_404_NOT_FOUND,
    OverpaymentError.code: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AlreadySettledError.code: status.HTTP_409_CONFLICT,
    CannotCancelPaidBillError.code: status.HTTP_409_CONFLICT,
    InvalidStateTransitionError.code: status.HTTP_409_CONFLICT,
    CollaboratorFailureError.code: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def billing_exception_handler(exc, context):
    """
    DRF exception handler that renders billing errors.

    Response body::

        {"error": "<code>", "message": "<text>", "detail": {...}}

    Anything that isn't a ``BillingServiceError`` goes to DRF's default
    handler.
    """
    if isinstance(exc, BillingServiceError):
        return Response(
            {
                'error': exc.code,
                'message': str(exc),
                'detail': exc.detail,
            },
            status=ERROR_STATUS_CODES.get(exc.code, status.HTTP_400_BAD_REQUEST),
        )

    return exception_handler(exc, context)
