"""
Inventory API Views.

Implements:
- Category listing and creation
- Product CRUD with search and category filters
- Low-stock and expiry alerts for admins
"""
from django.conf import settings
from django.db.models import Q
from rest_framework import generics, status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdminOrReadOnly, IsAdminRole
from .models import Category, Product
from .serializers import (
    CategorySerializer,
    ProductSerializer,
    ProductAlertSerializer,
)
from .services import low_stock_products, expiring_products


# =============================================================================
# Category Views
# =============================================================================

class CategoryListCreateView(generics.ListCreateAPIView):
    """
    GET: List all categories
    POST: Create a new category (admin)
    """
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    permission_classes = [IsAdminOrReadOnly]


# =============================================================================
# Product Views
# =============================================================================

class ProductListCreateView(generics.ListCreateAPIView):
    """
    GET: List products, newest first
    POST: Create a new product (admin)

    Query Parameters (GET):
        - search: Keyword matched against name, description and barcode
        - category: Category name or ID
    """
    serializer_class = ProductSerializer
    permission_classes = [IsAdminOrReadOnly]

    def get_queryset(self):
        queryset = Product.objects.select_related('category')

        keyword = self.request.query_params.get('search', '').strip()
        if keyword:
            queryset = queryset.filter(
                Q(name__icontains=keyword) |
                Q(description__icontains=keyword) |
                Q(barcode__icontains=keyword)
            )

        category = self.request.query_params.get('category', '').strip()
        if category:
            if category.isdigit():
                queryset = queryset.filter(category_id=int(category))
            else:
                queryset = queryset.filter(category__name__iexact=category)

        return queryset.order_by('-created_at', '-id')


class ProductDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET: Retrieve a product
    PUT/PATCH: Update a product, including a direct stock edit (admin)
    DELETE: Delete a product (admin)

    Order history keeps the product name and price it was sold at.
    """
    serializer_class = ProductSerializer
    permission_classes = [IsAdminOrReadOnly]

    def get_queryset(self):
        return Product.objects.select_related('category')


class ProductAlertsView(APIView):
    """
    GET: Low-stock and soon-to-expire products.

    Query Parameters:
        - threshold: Low stock threshold (default: LOW_STOCK_THRESHOLD)
        - days: Expiry window in days (default: EXPIRY_ALERT_DAYS)
    """
    permission_classes = [IsAdminRole]

    def _int_param(self, name, default):
        value = self.request.query_params.get(name)
        if value in (None, ''):
            return default
        try:
            parsed = int(value)
        except ValueError:
            raise ValidationError({name: 'Must be an integer.'})
        if parsed < 0:
            raise ValidationError({name: 'Must not be negative.'})
        return parsed

    def get(self, request):
        threshold = self._int_param('threshold', getattr(settings, 'LOW_STOCK_THRESHOLD', 10))
        days = self._int_param('days', getattr(settings, 'EXPIRY_ALERT_DAYS', 30))

        low_stock = low_stock_products(threshold)
        expiring = expiring_products(days)

        return Response({
            'low_stock_threshold': threshold,
            'expiry_alert_days': days,
            'low_stock': ProductAlertSerializer(low_stock, many=True).data,
            'expiring_soon': ProductAlertSerializer(expiring, many=True).data,
        }, status=status.HTTP_200_OK)
