"""Stock movements with row-level atomicity."""

import logging
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db.models import F, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from ..models import Product
from .exceptions import (
    ProductNotFoundError,
    InvalidQuantityError,
    InsufficientStockError,
)

logger = logging.getLogger(__name__)


def _validate_quantity(quantity):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantityError(f"Quantity must be a positive integer, got {quantity!r}")


def get_product(*, product_id: UUID, for_update: bool = False) -> Product:
    """
    Fetch a product regardless of its active flag.

    Args:
        product_id: Product UUID
        for_update: Lock the row until the surrounding transaction ends

    Raises:
        ProductNotFoundError: If product doesn't exist
    """
    queryset = Product.objects.all()
    if for_update:
        queryset = queryset.select_for_update()

    try:
        return queryset.get(id=product_id)
    except (Product.DoesNotExist, ValueError, ValidationError):
        raise ProductNotFoundError(f"Product {product_id} not found")


def decrement_stock(*, product_id: UUID, quantity: int) -> Product:
    """
    Take units out of stock and count them as sold.

    The decrement is a single conditional UPDATE (``stock_quantity >= quantity``),
    so two callers racing for the last units can never oversell.

    Raises:
        InvalidQuantityError: If quantity is not a positive integer
        ProductNotFoundError: If product doesn't exist
        InsufficientStockError: If fewer than ``quantity`` units are on hand
    """
    _validate_quantity(quantity)

    updated = Product.objects.filter(
        id=product_id,
        stock_quantity__gte=quantity,
    ).update(
        stock_quantity=F('stock_quantity') - quantity,
        sales_count=F('sales_count') + quantity,
        last_sold_date=timezone.now(),
        updated_at=timezone.now(),
    )

    product = get_product(product_id=product_id)
    if not updated:
        logger.warning(
            "Stock decrement rejected",
            extra={
                'product_id': str(product_id),
                'requested': quantity,
                'available': product.stock_quantity,
            },
        )
        raise InsufficientStockError(
            f"Insufficient stock for {product.name}. "
            f"Available: {product.stock_quantity}, Requested: {quantity}",
            product_id=product.id,
            requested=quantity,
            available=product.stock_quantity,
        )

    return product


def restore_stock(*, product_id: UUID, quantity: int) -> Product:
    """
    Put units back on hand and take them off the sales counter.

    The sales counter is floored at zero.

    Raises:
        InvalidQuantityError: If quantity is not a positive integer
        ProductNotFoundError: If product doesn't exist
    """
    _validate_quantity(quantity)

    updated = Product.objects.filter(id=product_id).update(
        stock_quantity=F('stock_quantity') + quantity,
        sales_count=Greatest(F('sales_count') - quantity, Value(0)),
        updated_at=timezone.now(),
    )
    if not updated:
        raise ProductNotFoundError(f"Product {product_id} not found")

    return get_product(product_id=product_id)
