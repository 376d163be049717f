"""
Tests for the Product Store, catalog API and stock alerts.
"""
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from .exceptions import OutOfStock, ProductNotFound
from .models import Category, Product
from .services import (
    adjust_quantity,
    expiring_products,
    get_product,
    lock_products,
    low_stock_products,
)
from .tasks import check_stock_alerts

User = get_user_model()


class ProductStoreTestCase(TestCase):
    """Test cases for stock reads and adjustments."""

    def setUp(self):
        self.category = Category.objects.create(name='Medications')
        self.product = Product.objects.create(
            name='Paracetamol 500mg',
            category=self.category,
            quantity=20,
            price=Decimal('10.00')
        )

    def test_get_product(self):
        product = get_product(self.product.id)

        self.assertEqual(product.name, 'Paracetamol 500mg')
        self.assertEqual(product.category.name, 'Medications')

    def test_get_unknown_product(self):
        with self.assertRaises(ProductNotFound) as context:
            get_product(99999)

        self.assertEqual(context.exception.to_dict()['product_id'], 99999)

    def test_lock_products_skips_missing_ids(self):
        products = lock_products([self.product.id, 99999])

        self.assertEqual(list(products), [self.product.id])

    def test_adjust_quantity(self):
        self.assertEqual(adjust_quantity(self.product.id, -5), 15)
        self.assertEqual(adjust_quantity(self.product.id, 3), 18)

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 18)

    def test_adjust_quantity_to_zero(self):
        self.assertEqual(adjust_quantity(self.product.id, -20), 0)

        self.product.refresh_from_db()
        self.assertTrue(self.product.is_out_of_stock)

    def test_adjust_quantity_never_goes_negative(self):
        with self.assertRaises(OutOfStock) as context:
            adjust_quantity(self.product.id, -21)

        self.assertEqual(context.exception.available, 20)
        self.assertEqual(context.exception.requested, 21)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 20)

    def test_adjust_unknown_product(self):
        with self.assertRaises(ProductNotFound):
            adjust_quantity(99999, 1)


class StockAlertTestCase(TestCase):
    """Test cases for low-stock and expiry queries."""

    def setUp(self):
        self.today = date(2026, 3, 1)
        category = Category.objects.create(name='Supplements')
        self.low = Product.objects.create(
            name='Zinc 50mg', category=category, quantity=3, price=Decimal('5.00')
        )
        self.plenty = Product.objects.create(
            name='Vitamin D3', category=category, quantity=80, price=Decimal('7.00'),
            expiry_date=self.today + timedelta(days=10)
        )
        self.expired = Product.objects.create(
            name='Fish Oil', category=category, quantity=40, price=Decimal('9.00'),
            expiry_date=self.today - timedelta(days=1)
        )
        self.far = Product.objects.create(
            name='Folic Acid', category=category, quantity=40, price=Decimal('3.00'),
            expiry_date=self.today + timedelta(days=300)
        )

    def test_low_stock_products(self):
        self.assertEqual(list(low_stock_products(10)), [self.low])
        self.assertEqual(
            set(low_stock_products(50)),
            {self.low, self.expired, self.far}
        )

    @override_settings(LOW_STOCK_THRESHOLD=4)
    def test_low_stock_default_threshold(self):
        self.assertEqual(list(low_stock_products()), [self.low])
        self.assertTrue(self.low.is_low_stock)
        self.assertFalse(self.plenty.is_low_stock)

    def test_expiring_products(self):
        self.assertEqual(list(expiring_products(30, today=self.today)), [self.plenty])
        self.assertEqual(list(expiring_products(5, today=self.today)), [])
        self.assertEqual(
            list(expiring_products(365, today=self.today)),
            [self.plenty, self.far]
        )

    def test_expiry_helpers(self):
        self.assertTrue(self.expired.is_expired(today=self.today))
        self.assertFalse(self.plenty.is_expired(today=self.today))
        self.assertFalse(self.low.is_expired(today=self.today))
        self.assertTrue(self.plenty.expires_within(10, today=self.today))
        self.assertFalse(self.far.expires_within(30, today=self.today))

    @override_settings(LOW_STOCK_THRESHOLD=10, EXPIRY_ALERT_DAYS=30)
    def test_check_stock_alerts_task(self):
        Product.objects.filter(pk=self.plenty.pk).update(
            expiry_date=timezone.localdate() + timedelta(days=10)
        )
        Product.objects.filter(pk=self.far.pk).update(
            expiry_date=timezone.localdate() + timedelta(days=300)
        )
        Product.objects.filter(pk=self.expired.pk).update(
            expiry_date=timezone.localdate() - timedelta(days=1)
        )

        with self.assertLogs('inventory.tasks', level='WARNING') as logs:
            result = check_stock_alerts()

        self.assertEqual(result, {'low_stock': 1, 'expiring_soon': 1})
        self.assertTrue(any('Zinc 50mg' in line for line in logs.output))


class ProductAPITestCase(APITestCase):
    """Test cases for the catalog API."""

    def setUp(self):
        self.customer = User.objects.create_user(username='jane', password='pw')
        self.admin = User.objects.create_user(username='admin', password='pw', is_staff=True)
        self.medications = Category.objects.create(name='Medications')
        self.supplies = Category.objects.create(name='Medical Supplies')
        self.paracetamol = Product.objects.create(
            name='Paracetamol 500mg', category=self.medications, quantity=50,
            price=Decimal('12.50'), barcode='4790000000001'
        )
        self.gauze = Product.objects.create(
            name='Gauze Pads', description='Sterile pads', category=self.supplies,
            quantity=2, price=Decimal('3.00')
        )
        self.list_url = reverse('inventory:product-list')

    def product_payload(self, **overrides):
        payload = {
            'name': 'Cetirizine 10mg',
            'category_id': self.medications.id,
            'quantity': 30,
            'price': '8.75',
        }
        payload.update(overrides)
        return payload

    def test_list_requires_authentication(self):
        response = self.client.get(self.list_url)

        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_customer_can_browse(self):
        self.client.force_authenticate(self.customer)

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        gauze = next(p for p in response.data if p['id'] == self.gauze.id)
        self.assertEqual(gauze['category']['name'], 'Medical Supplies')
        self.assertTrue(gauze['is_low_stock'])
        self.assertFalse(gauze['is_out_of_stock'])

    def test_search_and_category_filter(self):
        self.client.force_authenticate(self.customer)

        response = self.client.get(self.list_url, {'search': 'sterile'})
        self.assertEqual([p['id'] for p in response.data], [self.gauze.id])

        response = self.client.get(self.list_url, {'search': '4790000000001'})
        self.assertEqual([p['id'] for p in response.data], [self.paracetamol.id])

        response = self.client.get(self.list_url, {'category': 'medications'})
        self.assertEqual([p['id'] for p in response.data], [self.paracetamol.id])

        response = self.client.get(self.list_url, {'category': str(self.supplies.id)})
        self.assertEqual([p['id'] for p in response.data], [self.gauze.id])

    def test_customer_cannot_create_product(self):
        self.client.force_authenticate(self.customer)

        response = self.client.post(self.list_url, self.product_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Product.objects.count(), 2)

    def test_admin_creates_product(self):
        self.client.force_authenticate(self.admin)

        response = self.client.post(self.list_url, self.product_payload(barcode=''), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category']['id'], self.medications.id)
        self.assertEqual(response.data['price'], '8.75')
        self.assertIsNone(Product.objects.get(name='Cetirizine 10mg').barcode)

    def test_create_product_validation(self):
        self.client.force_authenticate(self.admin)

        response = self.client.post(self.list_url, self.product_payload(price='-1.00'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price', response.data)

        response = self.client.post(self.list_url, self.product_payload(quantity=-5), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(
            self.list_url, self.product_payload(barcode='4790000000001'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('barcode', response.data)

    def test_admin_edits_stock(self):
        self.client.force_authenticate(self.admin)
        url = reverse('inventory:product-detail', args=[self.gauze.id])

        response = self.client.patch(url, {'quantity': 40}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.gauze.refresh_from_db()
        self.assertEqual(self.gauze.quantity, 40)

    def test_category_api(self):
        url = reverse('inventory:category-list')

        self.client.force_authenticate(self.customer)
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            {c['name']: c['product_count'] for c in response.data},
            {'Medications': 1, 'Medical Supplies': 1}
        )
        self.assertEqual(
            self.client.post(url, {'name': 'Baby Care'}, format='json').status_code,
            status.HTTP_403_FORBIDDEN
        )

        self.client.force_authenticate(self.admin)
        response = self.client.post(url, {'name': 'Baby Care'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_alerts_admin_only(self):
        url = reverse('inventory:product-alerts')

        self.client.force_authenticate(self.customer)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.get(url, {'threshold': 5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['low_stock_threshold'], 5)
        self.assertEqual([p['name'] for p in response.data['low_stock']], ['Gauze Pads'])
        self.assertEqual(response.data['low_stock'][0]['category_name'], 'Medical Supplies')
        self.assertEqual(response.data['expiring_soon'], [])

        response = self.client.get(url, {'days': 'soon'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SeedDataCommandTestCase(TestCase):
    """Test cases for the seed_data management command."""

    def test_seed_data(self):
        out = StringIO()

        call_command('seed_data', products=12, stdout=out)

        self.assertEqual(Category.objects.count(), 5)
        self.assertEqual(Product.objects.count(), 12)
        self.assertIn('completed successfully', out.getvalue())

    def test_seed_data_clear(self):
        call_command('seed_data', products=5, stdout=StringIO())
        call_command('seed_data', products=3, clear=True, stdout=StringIO())

        self.assertEqual(Category.objects.count(), 5)
        self.assertEqual(Product.objects.count(), 3)
