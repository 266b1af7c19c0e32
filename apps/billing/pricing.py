"""
Bill Pricing Module
===================

Pure arithmetic for bills: the line-item calculator and the bill
aggregator. Nothing in here touches the database.

All money is integer paise (1 ₹ = 100 paise). Percentages are ``Decimal``.
Intermediate figures keep full ``Decimal`` precision; only the final
discount and tax amounts of a line are rounded (half-up) to whole paise,
and the line total is derived from those rounded amounts, so that::

    line_total == gross - discount + tax

holds exactly for every line, and bill totals are plain integer sums that
never drift no matter how often they are recomputed.

Example:
    Scenario from the till (₹100 x 3, 10% off, 18% GST)::

        >>> line = price_line(
        ...     unit_price_paise=10000,
        ...     quantity=3,
        ...     discount_percentage=Decimal('10'),
        ...     tax_rate=Decimal('18'),
        ... )
        >>> line.discount_paise, line.tax_paise, line.total_paise
        (3000, 4860, 31860)
        >>> to_rupees(line.total_paise)
        Decimal('318.60')
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP

from django.conf import settings

from .exceptions import InvalidInputError


HUNDRED = Decimal(100)
TWOPLACES = Decimal('0.01')

# Redemption value of one loyalty point, in paise
PAISE_PER_POINT = 100

PAYMENT_PENDING = 'pending'
PAYMENT_PARTIAL = 'partial'
PAYMENT_PAID = 'paid'


@dataclass(frozen=True)
class PricedLine:
    """Priced and taxed line. All amounts in paise."""

    gross_paise: int
    discount_paise: int
    tax_paise: int
    total_paise: int

    @property
    def taxable_paise(self):
        return self.gross_paise - self.discount_paise


@dataclass(frozen=True)
class BillTotals:
    """Aggregate figures of a bill. All amounts in paise."""

    subtotal_paise: int
    total_discount_paise: int
    total_tax_paise: int
    delivery_charge_paise: int
    grand_total_paise: int


@dataclass(frozen=True)
class PaymentPosition:
    """Where a bill stands against its payable total."""

    payment_status: str
    amount_due_paise: int
    remaining_paise: int


def _as_decimal(value, field):
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be a number", field=field, value=str(value))
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInputError(f"{field} must be a number", field=field, value=str(value))
    if not number.is_finite():
        raise InvalidInputError(f"{field} must be a finite number", field=field, value=str(value))
    return number


def _round_paise(amount):
    return int(amount.to_integral_value(rounding=ROUND_HALF_UP))


def to_paise(value, field='amount'):
    """
    Convert a rupee amount (``Decimal``, ``str`` or ``int``) to integer paise.

    Raises:
        InvalidInputError: If value isn't a number or has sub-paisa precision.
    """
    rupees = _as_decimal(value, field)
    paise = rupees * HUNDRED
    if paise != paise.to_integral_value():
        raise InvalidInputError(
            f"{field} cannot have more than two decimal places",
            field=field,
            value=str(value),
        )
    return int(paise)


def to_rupees(paise):
    """Convert integer paise to a two-place rupee ``Decimal`` for display."""
    return (Decimal(paise) / HUNDRED).quantize(TWOPLACES)


def to_percentage(value, field='discount_percentage'):
    """
    Parse a percentage in ``[0, 100]`` as ``Decimal``.

    Bill lines store percentages with two decimal places, so anything
    finer is rejected rather than rounded on the way to the database.

    Raises:
        InvalidInputError: If value isn't a number, is out of range or has
            more than two decimal places.
    """
    percentage = _as_decimal(value, field)
    if not (Decimal(0) <= percentage <= HUNDRED):
        raise InvalidInputError(
            f"{field} must be between 0 and 100 percent",
            field=field,
            value=str(value),
        )
    if percentage != percentage.quantize(TWOPLACES):
        raise InvalidInputError(
            f"{field} cannot have more than two decimal places",
            field=field,
            value=str(value),
        )
    return percentage


def price_line(*, unit_price_paise, quantity, discount_percentage=0, tax_rate=0):
    """
    Price one (unit price, quantity, discount %, tax rate) line.

    Args:
        unit_price_paise (int): Unit price in paise, ``>= 0``.
        quantity (int): Whole units, ``>= 1``.
        discount_percentage (Decimal | str | int): In ``[0, 100]``.
        tax_rate (Decimal | str | int): Percent, ``>= 0``.

    Returns:
        PricedLine: gross, discount, tax and total in paise.

    Raises:
        InvalidInputError: On any out-of-range or non-numeric input.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidInputError(
            "Quantity must be a whole number of at least 1",
            field='quantity',
            value=str(quantity),
        )
    if isinstance(unit_price_paise, bool) or not isinstance(unit_price_paise, int):
        raise InvalidInputError(
            "Unit price must be an integer number of paise",
            field='unit_price',
            value=str(unit_price_paise),
        )
    if unit_price_paise < 0:
        raise InvalidInputError(
            "Unit price cannot be negative",
            field='unit_price',
            value=str(unit_price_paise),
        )

    discount_pct = to_percentage(discount_percentage)

    rate = _as_decimal(tax_rate, 'tax_rate')
    if rate < 0:
        raise InvalidInputError(
            "Tax rate cannot be negative",
            field='tax_rate',
            value=str(tax_rate),
        )

    gross = unit_price_paise * quantity
    discount_exact = Decimal(gross) * discount_pct / HUNDRED
    tax_exact = (Decimal(gross) - discount_exact) * rate / HUNDRED

    discount = _round_paise(discount_exact)
    tax = _round_paise(tax_exact)

    return PricedLine(
        gross_paise=gross,
        discount_paise=discount,
        tax_paise=tax,
        total_paise=gross - discount + tax,
    )


def aggregate(lines, delivery_charge_paise=0):
    """
    Fold priced lines and a delivery charge into bill totals.

    Pure and idempotent: the same lines always give the same totals.

    Args:
        lines (Iterable[PricedLine]): Priced lines of the bill.
        delivery_charge_paise (int): Delivery charge in paise, ``>= 0``.

    Returns:
        BillTotals

    Raises:
        InvalidInputError: If the delivery charge is negative.
    """
    if isinstance(delivery_charge_paise, bool) or not isinstance(delivery_charge_paise, int):
        raise InvalidInputError(
            "Delivery charge must be an integer number of paise",
            field='delivery_charge',
            value=str(delivery_charge_paise),
        )
    if delivery_charge_paise < 0:
        raise InvalidInputError(
            "Delivery charges cannot be negative",
            field='delivery_charge',
            value=str(delivery_charge_paise),
        )

    subtotal = 0
    total_discount = 0
    total_tax = 0
    for line in lines:
        subtotal += line.gross_paise
        total_discount += line.discount_paise
        total_tax += line.tax_paise

    return BillTotals(
        subtotal_paise=subtotal,
        total_discount_paise=total_discount,
        total_tax_paise=total_tax,
        delivery_charge_paise=delivery_charge_paise,
        grand_total_paise=subtotal - total_discount + total_tax + delivery_charge_paise,
    )


def max_redeemable_points(grand_total_paise):
    """Most loyalty points a bill of this size accepts (cap share of grand total)."""
    cap = Decimal(str(settings.BILLING_LOYALTY_REDEMPTION_CAP))
    limit_paise = Decimal(grand_total_paise) * cap
    return int((limit_paise / PAISE_PER_POINT).to_integral_value(rounding=ROUND_FLOOR))


def payment_position(*, grand_total_paise, amount_paid_paise, loyalty_points_used=0):
    """
    Derive payment status and amount due.

    Redeemed points count toward the payable total, so the bill is ``paid``
    once ``amount_paid >= grand_total - points_value``. With no points
    redeemed that is simply ``amount_paid >= grand_total``.
    """
    payable = max(0, grand_total_paise - loyalty_points_used * PAISE_PER_POINT)
    remaining = max(0, payable - amount_paid_paise)

    if amount_paid_paise >= payable:
        payment_status = PAYMENT_PAID
    elif amount_paid_paise > 0:
        payment_status = PAYMENT_PARTIAL
    else:
        payment_status = PAYMENT_PENDING

    return PaymentPosition(
        payment_status=payment_status,
        amount_due_paise=remaining,
        remaining_paise=remaining,
    )
