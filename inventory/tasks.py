"""
Celery tasks for stock monitoring.

Tasks:
    - check_stock_alerts: Periodic scan for low-stock and expiring products
"""
import logging

from celery import shared_task
from django.conf import settings

logger = logging.getLogger(__name__)


@shared_task
def check_stock_alerts():
    """
    Log low-stock and soon-to-expire products.

    Scheduled daily via Celery Beat (see config/celery.py).
    """
    from inventory.services import low_stock_products, expiring_products

    threshold = getattr(settings, 'LOW_STOCK_THRESHOLD', 10)
    days = getattr(settings, 'EXPIRY_ALERT_DAYS', 30)

    low_stock = list(low_stock_products(threshold))
    expiring = list(expiring_products(days))

    for product in low_stock:
        logger.warning(
            f"[STOCK] Low stock: {product.name} has {product.quantity} units "
            f"(threshold {threshold})"
        )
    for product in expiring:
        logger.warning(f"[STOCK] Expiring soon: {product.name} expires {product.expiry_date}")

    if not low_stock and not expiring:
        logger.info("[STOCK] No stock alerts")

    return {'low_stock': len(low_stock), 'expiring_soon': len(expiring)}
