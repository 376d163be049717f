"""
Django Admin configuration for order models.

Status changes made here bypass the order workflow, so the status field is
read-only; use the API to move orders along so stock stays consistent.
"""
from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'product_name', 'quantity', 'price', 'subtotal']
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer_name', 'status', 'payment_status', 'total_amount', 'item_count', 'created_at']
    list_filter = ['status', 'payment_method', 'payment_status', 'created_at']
    search_fields = ['order_number', 'customer_name', 'customer_email', 'user__username']
    ordering = ['-created_at']
    readonly_fields = ['order_number', 'user', 'status', 'total_amount', 'created_at', 'updated_at']
    inlines = [OrderItemInline]

    @admin.display(description='Items')
    def item_count(self, obj):
        return obj.items.count()
