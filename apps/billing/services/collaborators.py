"""
Adapters over the product and customer stores.

Billing never imports the stores' exceptions anywhere else: every call
goes through here and store errors come out as billing errors. Unexpected
database failures become ``CollaboratorFailureError``.
"""

import logging
from uuid import UUID

from django.db import DatabaseError

from apps.customers import services as customer_store
from apps.products import services as product_store
from ..exceptions import (
    CollaboratorFailureError,
    CustomerNotFoundError,
    InsufficientStockError,
    InvalidInputError,
    ProductInactiveError,
    ProductNotFoundError,
)

logger = logging.getLogger(__name__)


def _collaborator_failure(store, exc):
    logger.error(
        "Collaborator store failed",
        extra={'store': store, 'error': str(exc)},
    )
    return CollaboratorFailureError(f"{store} store failed", store=store)


def load_customer(*, customer_id: UUID, for_update: bool = False):
    """
    Raises:
        CustomerNotFoundError: Missing or inactive customer
    """
    try:
        return customer_store.get_customer(customer_id=customer_id, for_update=for_update)
    except customer_store.CustomerNotFoundError as exc:
        raise CustomerNotFoundError(
            f"Customer {customer_id} not found",
            customer_id=str(customer_id),
        ) from exc
    except DatabaseError as exc:
        raise _collaborator_failure('customer', exc) from exc


def lock_customer(*, customer_id: UUID):
    """
    Lock a customer row, active or not, ahead of any product row.

    Every path that touches both stores takes the customer first, then
    products in id order.

    Raises:
        CustomerNotFoundError: Customer no longer exists
    """
    try:
        return customer_store.get_customer(
            customer_id=customer_id,
            for_update=True,
            active_only=False,
        )
    except customer_store.CustomerNotFoundError as exc:
        raise CustomerNotFoundError(
            f"Customer {customer_id} not found",
            customer_id=str(customer_id),
        ) from exc
    except DatabaseError as exc:
        raise _collaborator_failure('customer', exc) from exc


def load_products(*, product_ids):
    """
    Lock and return active products keyed by id.

    Rows are locked in id order so two carts sharing products can't
    deadlock each other.

    Raises:
        ProductNotFoundError: Any id is unknown
        ProductInactiveError: Any product is deactivated
    """
    products = {}
    for product_id in sorted(set(product_ids), key=str):
        try:
            product = product_store.get_product(product_id=product_id, for_update=True)
        except product_store.ProductNotFoundError as exc:
            raise ProductNotFoundError(
                f"Product {product_id} not found",
                product_id=str(product_id),
            ) from exc
        except DatabaseError as exc:
            raise _collaborator_failure('product', exc) from exc

        if not product.is_active:
            raise ProductInactiveError(
                f"Product {product.name} is not available",
                product_id=str(product.id),
                product_name=product.name,
            )
        products[product_id] = product
    return products


def take_stock(*, product, quantity: int):
    """
    Raises:
        InsufficientStockError: The conditional decrement lost a race
    """
    try:
        return product_store.decrement_stock(product_id=product.id, quantity=quantity)
    except product_store.InsufficientStockError as exc:
        raise InsufficientStockError([{
            'product_id': str(product.id),
            'product_name': product.name,
            'requested': exc.requested,
            'available': exc.available,
        }]) from exc
    except product_store.ProductNotFoundError as exc:
        raise ProductNotFoundError(
            f"Product {product.id} not found",
            product_id=str(product.id),
        ) from exc
    except DatabaseError as exc:
        raise _collaborator_failure('product', exc) from exc


def return_stock(*, product_id: UUID, quantity: int):
    """Put units back; a product deleted since the sale is skipped."""
    if product_id is None:
        return None
    try:
        return product_store.restore_stock(product_id=product_id, quantity=quantity)
    except product_store.ProductNotFoundError:
        logger.warning(
            "Stock not restored, product no longer exists",
            extra={'product_id': str(product_id), 'quantity': quantity},
        )
        return None
    except DatabaseError as exc:
        raise _collaborator_failure('product', exc) from exc


def points_for(*, customer, grand_total_paise: int) -> int:
    return customer_store.calculate_loyalty_points(
        customer=customer,
        grand_total_paise=grand_total_paise,
    )


def record_purchase(*, customer_id, grand_total_paise, points_earned, points_used):
    """
    Raises:
        CustomerNotFoundError: Customer vanished or was deactivated
        InvalidInputError: Loyalty balance can't cover ``points_used``
    """
    try:
        return customer_store.apply_purchase(
            customer_id=customer_id,
            grand_total_paise=grand_total_paise,
            points_earned=points_earned,
            points_used=points_used,
        )
    except customer_store.CustomerNotFoundError as exc:
        raise CustomerNotFoundError(
            f"Customer {customer_id} not found",
            customer_id=str(customer_id),
        ) from exc
    except customer_store.InsufficientLoyaltyPointsError as exc:
        raise InvalidInputError(
            str(exc),
            field='loyalty_points_used',
            value=points_used,
        ) from exc
    except DatabaseError as exc:
        raise _collaborator_failure('customer', exc) from exc


def reverse_customer_purchase(
    *,
    customer_id,
    grand_total_paise,
    points_earned,
    points_used=0,
    purchase_count=1,
):
    try:
        return customer_store.reverse_purchase(
            customer_id=customer_id,
            grand_total_paise=grand_total_paise,
            points_earned=points_earned,
            points_used=points_used,
            purchase_count=purchase_count,
        )
    except customer_store.CustomerNotFoundError as exc:
        raise CustomerNotFoundError(
            f"Customer {customer_id} not found",
            customer_id=str(customer_id),
        ) from exc
    except DatabaseError as exc:
        raise _collaborator_failure('customer', exc) from exc
