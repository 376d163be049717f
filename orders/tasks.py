"""
Celery tasks for order processing.

Tasks:
    - send_order_confirmation: Async notification after an order is placed
    - send_order_status_update: Async notification after a status change
"""
import logging

from celery import shared_task
from django.conf import settings

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def send_order_confirmation(self, order_id: int):
    """
    Async task triggered after successful order placement.

    In production, this would email or text the customer and generate an
    invoice.

    Args:
        order_id: ID of the placed order

    Returns:
        Dict with confirmation details
    """
    from orders.models import Order

    try:
        order = Order.objects.prefetch_related('items').get(id=order_id)
    except Order.DoesNotExist:
        logger.error(f"Order #{order_id} not found for confirmation")
        return {'status': 'error', 'message': f'Order {order_id} not found'}

    if order.is_cancelled:
        logger.warning(f"Order {order.order_number} was cancelled, skipping confirmation")
        return {
            'status': 'skipped',
            'message': f'Order {order_id} is cancelled'
        }

    currency = getattr(settings, 'CURRENCY_SYMBOL', 'Rs')
    items_summary = [
        f"  - {item.quantity}x {item.product_name} @ {currency} {item.price}"
        for item in order.items.all()
    ]

    confirmation_message = f"""
    ===============================================
    ORDER CONFIRMATION - {order.order_number}
    ===============================================
    Customer: {order.customer_name}
    Address: {order.customer_address}
    Payment: {order.get_payment_method_display()}
    Total: {currency} {order.total_amount}

    Items:
    {chr(10).join(items_summary)}

    Placed: {order.created_at.strftime('%Y-%m-%d %H:%M:%S')}
    ===============================================
    """

    logger.info(confirmation_message)

    return {
        'status': 'success',
        'order_id': order.id,
        'message': f'Confirmation sent for order {order.order_number}'
    }


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def send_order_status_update(self, order_id: int):
    """Notify the customer that their order moved to a new status."""
    from orders.models import Order

    try:
        order = Order.objects.get(id=order_id)
    except Order.DoesNotExist:
        logger.error(f"Order #{order_id} not found for status update")
        return {'status': 'error', 'message': f'Order {order_id} not found'}

    logger.info(
        f"[CELERY] Order {order.order_number} for {order.customer_name} "
        f"is now {order.get_status_display()}"
    )

    return {
        'status': 'success',
        'order_id': order.id,
        'order_status': order.status,
    }
