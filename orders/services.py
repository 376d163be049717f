"""
Order Service Layer - Atomic order placement and status management.

Placement runs as a single transaction:
1. Validate the request (before any write)
2. Lock product rows with select_for_update(), in id order
3. Check ALL items against live stock
4. Insert the order header with a fresh order number, then the items
5. Deduct stock for every item

Any failure rolls the whole transaction back. An order number collision is
retried with a new number a bounded number of times.

Cancelling an order returns every item to stock inside the same transaction
that records the new status, exactly once.
"""
import logging
import secrets
from decimal import Decimal
from functools import partial
from typing import Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, Q, QuerySet, Sum
from django.utils import timezone

from core.retry import retryable_attempts
from inventory.exceptions import OutOfStock, ProductNotFound
from inventory.services import adjust_quantity, lock_products
from .exceptions import (
    AlreadyCancelled,
    DuplicateOrderNumber,
    InvalidOrder,
    InvalidStatus,
    OrderNotFound,
)
from .models import Order, OrderItem
from .tasks import send_order_confirmation, send_order_status_update

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = 'ORD'


def generate_order_number() -> str:
    """Return ``ORD-<epoch millis>-<6 random digits>``."""
    timestamp = int(timezone.now().timestamp() * 1000)
    return f"{ORDER_NUMBER_PREFIX}-{timestamp}-{secrets.randbelow(10 ** 6):06d}"


def validate_order_request(customer: Optional[Dict], items: List[Dict], payment_method: str) -> None:
    """
    Validate an order request before touching the database.

    Args:
        customer: Dict with 'name', 'address' and optional 'email', 'phone'
        items: List of dicts with 'product_id' and 'quantity'
        payment_method: One of Order.PaymentMethod

    Raises:
        InvalidOrder: If validation fails
    """
    if not items:
        raise InvalidOrder("Order must contain at least one item")

    seen_products = set()
    for idx, item in enumerate(items):
        if 'product_id' not in item:
            raise InvalidOrder(f"Item {idx}: missing 'product_id'")
        if 'quantity' not in item:
            raise InvalidOrder(f"Item {idx}: missing 'quantity'")

        product_id = item['product_id']
        quantity = item['quantity']

        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise InvalidOrder(f"Item {idx}: product_id must be an integer")

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidOrder(f"Item {idx}: quantity must be a positive integer")

        if product_id in seen_products:
            raise InvalidOrder(f"Item {idx}: duplicate product_id {product_id}")
        seen_products.add(product_id)

    customer = customer or {}
    name = customer.get('name')
    address = customer.get('address')
    if not isinstance(name, str) or not isinstance(address, str) or not name.strip() or not address.strip():
        raise InvalidOrder("Customer name and address are required")
    for field in ('email', 'phone'):
        if not isinstance(customer.get(field) or '', str):
            raise InvalidOrder(f"Customer {field} must be a string")

    if payment_method not in Order.PaymentMethod.values:
        raise InvalidOrder(f"Unsupported payment method: {payment_method}")


def _queue_task(task, order_id: int) -> None:
    # Don't fail the order if task queuing fails
    try:
        task.delay(order_id)
        logger.info(f"Triggered {task.name} for order #{order_id}")
    except Exception as e:
        logger.error(f"Failed to queue {task.name} for order #{order_id}: {e}")


@transaction.atomic
def _create_order(user_id: int, customer: Dict, items: List[Dict],
                  payment_method: str, notes: str) -> Order:
    products = lock_products(item['product_id'] for item in items)

    # Check all stock BEFORE any writes
    total_amount = Decimal('0.00')
    lines = []
    for item in items:
        product = products.get(item['product_id'])
        if product is None:
            raise ProductNotFound(item['product_id'])

        quantity = item['quantity']
        if product.quantity < quantity:
            raise OutOfStock(
                product_id=product.pk,
                product_name=product.name,
                requested=quantity,
                available=product.quantity,
            )

        total_amount += product.price * quantity
        lines.append((product, quantity))

    order_number = generate_order_number()
    try:
        with transaction.atomic():
            order = Order.objects.create(
                order_number=order_number,
                user_id=user_id,
                customer_name=customer['name'].strip(),
                customer_email=(customer.get('email') or '').strip(),
                customer_phone=(customer.get('phone') or '').strip(),
                customer_address=customer['address'].strip(),
                total_amount=total_amount,
                status=Order.Status.PENDING,
                payment_method=payment_method,
                notes=notes or '',
            )
    except IntegrityError as exc:
        if Order.objects.filter(order_number=order_number).exists():
            logger.warning(f"Order number collision on {order_number}")
            raise DuplicateOrderNumber(order_number) from exc
        raise

    OrderItem.objects.bulk_create([
        OrderItem(
            order=order,
            product=product,
            product_name=product.name,
            quantity=quantity,
            price=product.price,
            subtotal=product.price * quantity,
        )
        for product, quantity in lines
    ])

    for product, quantity in lines:
        remaining = adjust_quantity(product.pk, -quantity)
        logger.debug(
            f"Order {order.order_number}: deducted {quantity} of {product.name}, "
            f"remaining stock: {remaining}"
        )

    transaction.on_commit(partial(_queue_task, send_order_confirmation, order.pk))
    return order


def place_order(user_id: int, customer: Dict, items: List[Dict],
                payment_method: str = Order.PaymentMethod.CASH, notes: str = '') -> Order:
    """
    Place an order and deduct its items from stock atomically.

    Args:
        user_id: ID of the ordering user
        customer: Dict with 'name', 'address' and optional 'email', 'phone'
        items: List of dicts with 'product_id' and 'quantity'
        payment_method: One of Order.PaymentMethod
        notes: Free-form order notes

    Returns:
        The created Order in PENDING status, items prefetched

    Raises:
        InvalidOrder: If the request is malformed
        ProductNotFound: If a product does not exist
        OutOfStock: If any item exceeds available stock
        DuplicateOrderNumber: If every generated order number collided
    """
    validate_order_request(customer, items, payment_method)

    for attempt in retryable_attempts(DuplicateOrderNumber):
        with attempt:
            order = _create_order(user_id, customer, items, payment_method, notes)

    logger.info(
        f"Order {order.order_number} placed by user {user_id}: "
        f"{len(items)} items, total {order.total_amount}"
    )
    return get_order(order.pk)


def _restore_inventory(order: Order) -> None:
    """Return every item of ``order`` to stock."""
    for item in order.items.order_by('product_id'):
        if item.product_id is None:
            logger.warning(
                f"Order {order.order_number}: product '{item.product_name}' no longer "
                f"exists, {item.quantity} units not restored"
            )
            continue
        remaining = adjust_quantity(item.product_id, item.quantity)
        logger.debug(
            f"Order {order.order_number}: restored {item.quantity} of "
            f"{item.product_name}, stock now {remaining}"
        )


def update_order_status(order_id: int, new_status: str) -> Order:
    """
    Move an order to ``new_status`` along the allowed transitions.

    Cancelling restores the order's items to stock in the same transaction.

    Raises:
        InvalidStatus: Unknown status or disallowed transition
        OrderNotFound: If the order does not exist
        AlreadyCancelled: If the order is already cancelled
    """
    if new_status not in Order.Status.values:
        raise InvalidStatus(f"Invalid order status: {new_status}")

    with transaction.atomic():
        try:
            order = Order.objects.select_for_update().get(pk=order_id)
        except Order.DoesNotExist:
            raise OrderNotFound(order_id)

        if order.is_cancelled and new_status == Order.Status.CANCELLED:
            raise AlreadyCancelled(order.order_number)

        if not order.can_transition_to(new_status):
            raise InvalidStatus(
                f"Cannot change order {order.order_number} from {order.status} to {new_status}"
            )

        previous_status = order.status
        order.status = new_status
        update_fields = ['status', 'updated_at']

        if new_status == Order.Status.CANCELLED:
            _restore_inventory(order)
            if order.payment_status == Order.PaymentStatus.PAID:
                order.payment_status = Order.PaymentStatus.REFUNDED
                update_fields.append('payment_status')

        order.save(update_fields=update_fields)
        transaction.on_commit(partial(_queue_task, send_order_status_update, order.pk))

    logger.info(f"Order {order.order_number}: {previous_status} -> {new_status}")
    return get_order(order.pk)


# =============================================================================
# Queries
# =============================================================================

def _orders_with_items() -> QuerySet:
    return Order.objects.select_related('user').prefetch_related('items')


def get_order(order_id: int) -> Order:
    try:
        return _orders_with_items().get(pk=order_id)
    except Order.DoesNotExist:
        raise OrderNotFound(order_id)


def list_orders(status: Optional[str] = None) -> QuerySet:
    """All orders, newest first, optionally filtered by status."""
    queryset = _orders_with_items()
    if status:
        if status not in Order.Status.values:
            raise InvalidStatus(f"Invalid order status: {status}")
        queryset = queryset.filter(status=status)
    return queryset.order_by('-created_at', '-id')


def list_user_orders(user_id: int) -> QuerySet:
    return _orders_with_items().filter(user_id=user_id).order_by('-created_at', '-id')


def order_statistics() -> Dict:
    """Order counts and revenue; cancelled orders don't count as revenue."""
    stats = Order.objects.aggregate(
        total_orders=Count('id'),
        pending_orders=Count('id', filter=Q(status=Order.Status.PENDING)),
        total_revenue=Sum('total_amount', filter=~Q(status=Order.Status.CANCELLED)),
    )
    stats['total_revenue'] = stats['total_revenue'] or Decimal('0.00')
    stats['by_status'] = list(
        Order.objects.order_by().values('status').annotate(count=Count('id')).order_by('status')
    )
    return stats
