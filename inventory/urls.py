"""
URL routing for inventory API endpoints.
"""
from django.urls import path
from . import views

app_name = 'inventory'

urlpatterns = [
    # Categories
    path('categories/', views.CategoryListCreateView.as_view(), name='category-list'),

    # Products
    path('products/', views.ProductListCreateView.as_view(), name='product-list'),
    path('products/alerts/', views.ProductAlertsView.as_view(), name='product-alerts'),
    path('products/<int:pk>/', views.ProductDetailView.as_view(), name='product-detail'),
]
