"""
Order API Views.

Implements:
- GET /orders/ - List all orders (admin), optional ?status= filter
- POST /orders/ - Place an order from the client's cart
- GET /orders/mine/ - Orders of the current user
- GET /orders/stats/ - Order statistics (admin)
- GET /orders/{id}/ - Order detail with items
- PUT/PATCH /orders/{id}/status/ - Change order status
"""
import logging

from rest_framework import generics, status
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.identity import current_user
from core.permissions import IsAdminRole
from core.rate_limiting import RateLimitMixin
from .exceptions import OrderNotFound
from .models import Order
from .serializers import (
    OrderSerializer,
    OrderCreateSerializer,
    OrderStatusUpdateSerializer,
)
from .services import (
    get_order,
    list_orders,
    list_user_orders,
    order_statistics,
    place_order,
    update_order_status,
)

logger = logging.getLogger(__name__)


class OrderListCreateView(RateLimitMixin, generics.ListCreateAPIView):
    """
    GET: List all orders with their items (admin)
    POST: Place a new order (rate limited)

    Query Parameters (GET):
        - status: Filter by status (pending, processing, shipped, delivered, cancelled)

    Request Body (POST): see OrderCreateSerializer
    """
    rate_limit_setting = 'ORDER_RATE_LIMIT'
    rate_limit_methods = ('POST',)
    rate_limit_scope = 'place_order'

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated()]
        return [IsAdminRole()]

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return OrderCreateSerializer
        return OrderSerializer

    def get_queryset(self):
        status_filter = self.request.query_params.get('status', '').strip().lower()
        return list_orders(status=status_filter or None)

    def create(self, request, *args, **kwargs):
        """
        Place an order.

        Returns:
            - 201: Order placed
            - 400: Validation error or unknown product
            - 409: Insufficient stock or order number collision
        """
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        items = [dict(item) for item in serializer.validated_data['items']]
        order = place_order(
            request.user.pk,
            customer=serializer.to_customer(),
            items=items,
            payment_method=serializer.validated_data['payment_method'],
            notes=serializer.validated_data.get('notes', ''),
        )

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class MyOrdersView(generics.ListAPIView):
    """
    GET: Orders placed by the current user, newest first.
    """
    serializer_class = OrderSerializer

    def get_queryset(self):
        return list_user_orders(self.request.user.pk)


def get_visible_order(request, order_id: int) -> Order:
    """Fetch an order the current user may see; others read as not found."""
    order = get_order(order_id)
    identity = current_user(request)
    if not identity.is_admin and order.user_id != identity.id:
        logger.warning(f"User {identity.id} requested order #{order_id} owned by another user")
        raise OrderNotFound(order_id)
    return order


class OrderDetailView(APIView):
    """
    GET: Retrieve order details with all items.

    Customers can only see their own orders.
    """

    def get(self, request, pk):
        order = get_visible_order(request, pk)
        return Response(OrderSerializer(order).data)


class OrderStatusView(APIView):
    """
    PUT/PATCH: Change an order's status.

    Admins may apply any allowed transition. Customers may only cancel
    their own orders. Cancelling returns the items to stock.

    Request Body:
        {"status": "cancelled"}
    """

    def put(self, request, pk):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data['status'].strip().lower()

        if not current_user(request).is_admin:
            get_visible_order(request, pk)
            if new_status != Order.Status.CANCELLED:
                raise PermissionDenied('Customers can only cancel their orders.')

        order = update_order_status(pk, new_status)
        return Response(OrderSerializer(order).data)

    def patch(self, request, pk):
        return self.put(request, pk)


class OrderStatsView(APIView):
    """
    GET: Order statistics (admin).
    """
    permission_classes = [IsAdminRole]

    def get(self, request):
        stats = order_statistics()
        stats['total_revenue'] = str(stats['total_revenue'])
        return Response(stats)
