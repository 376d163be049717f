"""
Inventory Models - Catalog and stock entities for the pharmacy.

Models:
    - Category: Product categorization
    - Product: Sellable items with stock level, price and expiry date
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class Category(models.Model):
    """
    Product category for organizing products.
    """
    name = models.CharField(
        max_length=100,
        unique=True,
        db_index=True,
        help_text="Unique category name"
    )
    description = models.TextField(
        blank=True,
        default='',
        help_text="Optional category description"
    )

    class Meta:
        verbose_name = 'Category'
        verbose_name_plural = 'Categories'
        ordering = ['name']

    def __str__(self):
        return self.name


class Product(models.Model):
    """
    Product entity representing items available for sale.

    ``quantity`` is the sellable stock. It is changed by order placement and
    cancellation (see ``inventory.services.adjust_quantity``) or by direct
    admin edits, and never goes below zero.
    """
    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Product name for display and search"
    )
    description = models.TextField(
        blank=True,
        default='',
        help_text="Optional product description"
    )
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name='products',
        help_text="Product category"
    )
    quantity = models.PositiveIntegerField(
        default=0,
        help_text="Units currently in stock"
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Unit price"
    )
    expiry_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Expiry date of the current batch"
    )
    supplier = models.CharField(
        max_length=200,
        blank=True,
        default='',
        help_text="Supplier name"
    )
    barcode = models.CharField(
        max_length=64,
        unique=True,
        null=True,
        blank=True,
        help_text="Unique barcode, if any"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['name']
        indexes = [
            models.Index(fields=['category', 'name'], name='product_category_name_idx'),
            models.Index(fields=['quantity'], name='product_quantity_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name='product_price_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name='product_quantity_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.quantity} in stock)"

    @property
    def is_low_stock(self) -> bool:
        """Check if stock is below the configured low stock threshold."""
        return self.quantity < getattr(settings, 'LOW_STOCK_THRESHOLD', 10)

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity == 0

    def is_expired(self, today: Optional[date] = None) -> bool:
        if self.expiry_date is None:
            return False
        today = today or timezone.localdate()
        return self.expiry_date < today

    def expires_within(self, days: int, today: Optional[date] = None) -> bool:
        """True if the product expires between today and ``days`` from now."""
        if self.expiry_date is None:
            return False
        today = today or timezone.localdate()
        return today <= self.expiry_date <= today + timedelta(days=days)
