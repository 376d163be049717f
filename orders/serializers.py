"""
Serializers for order models.
"""
from rest_framework import serializers
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    """Serializer for OrderItem with the snapshotted product details."""
    product_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product_id', 'product_name', 'quantity', 'price', 'subtotal']


class OrderItemCreateSerializer(serializers.Serializer):
    """Serializer for cart entries in an order placement request."""
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class OrderSerializer(serializers.ModelSerializer):
    """
    Serializer for Order model with nested items.
    Expects items to be prefetched.
    """
    items = OrderItemSerializer(many=True, read_only=True)
    item_count = serializers.SerializerMethodField()
    customer_username = serializers.CharField(source='user.username', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'user_id', 'customer_username',
            'customer_name', 'customer_email', 'customer_phone', 'customer_address',
            'total_amount', 'status', 'payment_method', 'payment_status', 'notes',
            'items', 'item_count', 'created_at', 'updated_at'
        ]

    def get_item_count(self, obj):
        # Use prefetched items count if available
        if hasattr(obj, '_prefetched_objects_cache') and 'items' in obj._prefetched_objects_cache:
            return len(obj.items.all())
        return obj.items.count()


class OrderCreateSerializer(serializers.Serializer):
    """
    Serializer for placing orders via POST /orders/

    Request format:
    {
        "customer_name": "Jane",
        "customer_address": "123 Rd",
        "customer_email": "jane@example.com",
        "customer_phone": "0771234567",
        "payment_method": "cash",
        "notes": "",
        "items": [
            {"product_id": 1, "quantity": 2},
            {"product_id": 3, "quantity": 1}
        ]
    }
    """
    customer_name = serializers.CharField(max_length=200)
    customer_address = serializers.CharField()
    customer_email = serializers.EmailField(required=False, allow_blank=True, default='')
    customer_phone = serializers.CharField(max_length=40, required=False, allow_blank=True, default='')
    payment_method = serializers.ChoiceField(
        choices=Order.PaymentMethod.choices,
        default=Order.PaymentMethod.CASH
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = OrderItemCreateSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value

    def to_customer(self):
        data = self.validated_data
        return {
            'name': data['customer_name'],
            'address': data['customer_address'],
            'email': data.get('customer_email', ''),
            'phone': data.get('customer_phone', ''),
        }


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField()
