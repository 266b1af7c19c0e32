"""Shared input checks for the settlement services."""

from uuid import UUID

from ..exceptions import InvalidInputError
from ..models import PaymentMethod
from ..pricing import to_paise


REASON_MAX_LENGTH = 200
REFERENCE_MAX_LENGTH = 100

# 'multiple' describes a bill, never a single payment
PAYMENT_RECORD_METHODS = frozenset(PaymentMethod.values) - {PaymentMethod.MULTIPLE}


def require_text(value, *, field, max_length):
    if value is None:
        value = ''
    if not isinstance(value, str):
        raise InvalidInputError(f"{field} must be text", field=field, value=str(value))
    text = value.strip()
    if not text:
        raise InvalidInputError(f"{field} is required", field=field, value=value)
    if len(text) > max_length:
        raise InvalidInputError(
            f"{field} cannot exceed {max_length} characters",
            field=field,
            value=len(text),
        )
    return text


def require_reason(reason):
    return require_text(reason, field='reason', max_length=REASON_MAX_LENGTH)


def require_whole_number(value, *, field, minimum=0):
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise InvalidInputError(
            f"{field} must be a whole number of at least {minimum}",
            field=field,
            value=str(value),
        )
    return value


def require_uuid(value, *, field):
    try:
        return value if isinstance(value, UUID) else UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        raise InvalidInputError(f"{field} must be a UUID", field=field, value=str(value))


def payment_method(value, *, field='payment_method', allow_multiple=True):
    allowed = PaymentMethod.values if allow_multiple else PAYMENT_RECORD_METHODS
    if value not in allowed:
        raise InvalidInputError(
            f"Unknown payment method {value!r}",
            field=field,
            value=str(value),
        )
    return value


def payment_amount(value, *, field='amount'):
    """Rupee amount to paise; must be strictly positive."""
    amount = to_paise(value, field)
    if amount <= 0:
        raise InvalidInputError("Payment amount must be greater than 0", field=field, value=str(value))
    return amount


def reference(value):
    if value is None:
        return ''
    if not isinstance(value, str):
        raise InvalidInputError("reference must be text", field='reference', value=str(value))
    text = value.strip()
    if len(text) > REFERENCE_MAX_LENGTH:
        raise InvalidInputError(
            f"reference cannot exceed {REFERENCE_MAX_LENGTH} characters",
            field='reference',
            value=len(text),
        )
    return text
