"""
Product Store - stock reads and atomic quantity adjustments.

Stock is only ever changed through ``adjust_quantity``, which applies the
delta as a single conditional UPDATE so the row can never go negative,
whatever the database backend's locking support.
"""
import logging
from datetime import date, timedelta
from typing import Dict, Iterable, Optional

from django.conf import settings
from django.db.models import F, QuerySet
from django.utils import timezone

from .exceptions import OutOfStock, ProductNotFound
from .models import Product

logger = logging.getLogger(__name__)


def get_product(product_id: int) -> Product:
    try:
        return Product.objects.select_related('category').get(pk=product_id)
    except Product.DoesNotExist:
        raise ProductNotFound(product_id)


def lock_products(product_ids: Iterable[int]) -> Dict[int, Product]:
    """
    Lock product rows for update and return them keyed by id.

    Rows are locked in primary key order to prevent deadlocks between
    concurrent orders. Must be called inside ``transaction.atomic()``.
    Missing ids are simply absent from the result.
    """
    queryset = Product.objects.select_for_update().filter(
        pk__in=list(product_ids)
    ).order_by('pk')
    return {product.pk: product for product in queryset}


def adjust_quantity(product_id: int, delta: int) -> int:
    """
    Apply a signed stock delta and return the new quantity.

    Raises:
        ProductNotFound: If the product does not exist
        OutOfStock: If the delta would take the stock below zero
    """
    updated = Product.objects.filter(
        pk=product_id,
        quantity__gte=-delta
    ).update(quantity=F('quantity') + delta, updated_at=timezone.now())

    if not updated:
        product = Product.objects.filter(pk=product_id).only('name', 'quantity').first()
        if product is None:
            raise ProductNotFound(product_id)
        raise OutOfStock(
            product_id=product.pk,
            product_name=product.name,
            requested=-delta,
            available=product.quantity,
        )

    quantity = Product.objects.values_list('quantity', flat=True).get(pk=product_id)
    logger.debug(f"Product {product_id}: stock adjusted by {delta:+d}, now {quantity}")
    return quantity


def low_stock_products(threshold: Optional[int] = None) -> QuerySet:
    """Products with stock below ``threshold`` (defaults to LOW_STOCK_THRESHOLD)."""
    if threshold is None:
        threshold = getattr(settings, 'LOW_STOCK_THRESHOLD', 10)
    return Product.objects.select_related('category').filter(
        quantity__lt=threshold
    ).order_by('quantity', 'name')


def expiring_products(days: Optional[int] = None, today: Optional[date] = None) -> QuerySet:
    """Products whose expiry date falls within the next ``days`` days."""
    if days is None:
        days = getattr(settings, 'EXPIRY_ALERT_DAYS', 30)
    today = today or timezone.localdate()
    return Product.objects.select_related('category').filter(
        expiry_date__isnull=False,
        expiry_date__gte=today,
        expiry_date__lte=today + timedelta(days=days),
    ).order_by('expiry_date', 'name')
