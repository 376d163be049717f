"""
Django Admin configuration for inventory models.
"""
from django.contrib import admin
from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'product_count']
    search_fields = ['name']
    ordering = ['name']

    @admin.display(description='Products')
    def product_count(self, obj):
        return obj.products.count()


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'category', 'quantity', 'price', 'expiry_date', 'is_low_stock']
    list_filter = ['category', 'expiry_date']
    search_fields = ['name', 'description', 'barcode', 'supplier']
    ordering = ['name']
    raw_id_fields = ['category']

    @admin.display(boolean=True, description='Low Stock')
    def is_low_stock(self, obj):
        return obj.is_low_stock
