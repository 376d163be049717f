"""
Tests for identity, error rendering, retries and rate limiting.
"""
from decimal import Decimal
from unittest.mock import MagicMock, patch

import redis
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.test import APITestCase

from inventory.exceptions import OutOfStock
from inventory.models import Category, Product
from orders.models import Order
from .exceptions import ServiceError, api_exception_handler
from .identity import ADMIN, CUSTOMER, identity_for_user
from .rate_limiting import parse_rate
from .retry import retryable_attempts

User = get_user_model()


class IdentityTestCase(TestCase):
    """Test cases for mapping users to roles."""

    def test_staff_user_is_admin(self):
        user = User.objects.create_user(username='admin', password='pw', is_staff=True)

        identity = identity_for_user(user)

        self.assertEqual(identity.id, user.pk)
        self.assertEqual(identity.role, ADMIN)
        self.assertTrue(identity.is_admin)

    def test_regular_user_is_customer(self):
        user = User.objects.create_user(username='jane', password='pw')

        identity = identity_for_user(user)

        self.assertEqual(identity.role, CUSTOMER)
        self.assertFalse(identity.is_admin)

    def test_anonymous_user(self):
        identity = identity_for_user(AnonymousUser())

        self.assertIsNone(identity.id)
        self.assertEqual(identity.role, CUSTOMER)


class ExceptionHandlerTestCase(SimpleTestCase):
    """Test cases for rendering service errors."""

    def test_service_error_payload(self):
        exc = OutOfStock(product_id=7, product_name='Cough Syrup', requested=15, available=10)

        response = api_exception_handler(exc, {'view': None})

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Out Of Stock')
        self.assertEqual(
            response.data['detail'],
            'Insufficient stock for Cough Syrup. Available: 10, Requested: 15'
        )
        self.assertEqual(response.data['available'], 10)
        self.assertEqual(response.data['requested'], 15)

    def test_plain_service_error(self):
        response = api_exception_handler(ServiceError('Something odd'), {'view': None})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'error': 'Error', 'detail': 'Something odd'})

    def test_drf_errors_use_default_handler(self):
        response = api_exception_handler(NotFound(), {'view': None})

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertNotIn('error', response.data)

    def test_unexpected_errors_propagate(self):
        self.assertIsNone(api_exception_handler(RuntimeError('boom'), {'view': None}))


class RetryTestCase(SimpleTestCase):
    """Test cases for the retry policy."""

    def test_retries_until_success(self):
        calls = []

        for attempt in retryable_attempts(ServiceError, max_attempts=3):
            with attempt:
                calls.append(1)
                if len(calls) < 3:
                    raise ServiceError('collision')

        self.assertEqual(len(calls), 3)

    def test_reraises_last_error(self):
        calls = []

        with self.assertRaises(ServiceError):
            for attempt in retryable_attempts(ServiceError, max_attempts=2):
                with attempt:
                    calls.append(1)
                    raise ServiceError('collision')

        self.assertEqual(len(calls), 2)

    def test_other_errors_not_retried(self):
        calls = []

        with self.assertRaises(ValueError):
            for attempt in retryable_attempts(ServiceError, max_attempts=3):
                with attempt:
                    calls.append(1)
                    raise ValueError('bad')

        self.assertEqual(len(calls), 1)


class RateLimitTestCase(APITestCase):
    """Test cases for rate limiting on order placement."""

    def setUp(self):
        self.user = User.objects.create_user(username='jane', password='pw')
        self.admin = User.objects.create_user(username='admin', password='pw', is_staff=True)
        category = Category.objects.create(name='Medications')
        self.product = Product.objects.create(
            name='P1', category=category, quantity=10, price=Decimal('100.00')
        )
        self.url = reverse('orders:order-list')
        self.payload = {
            'customer_name': 'Jane',
            'customer_address': '123 Rd',
            'items': [{'product_id': self.product.id, 'quantity': 1}],
        }

    def mock_redis(self, count, ttl=42):
        client = MagicMock()
        client.incr.return_value = count
        client.ttl.return_value = ttl
        return client

    def test_parse_rate(self):
        self.assertEqual(parse_rate('20/60'), (20, 60))

    @override_settings(RATE_LIMIT_ENABLED=True, ORDER_RATE_LIMIT='20/60')
    def test_within_limit(self):
        client = self.mock_redis(count=1, ttl=-1)
        self.client.force_authenticate(self.user)

        with patch('core.rate_limiting.get_redis_client', return_value=client):
            response = self.client.post(self.url, self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response['X-RateLimit-Limit'], '20')
        self.assertEqual(response['X-RateLimit-Remaining'], '19')
        client.incr.assert_called_once_with(f'rate_limit:place_order:user:{self.user.pk}')
        client.expire.assert_called_once_with(f'rate_limit:place_order:user:{self.user.pk}', 60)

    @override_settings(RATE_LIMIT_ENABLED=True, ORDER_RATE_LIMIT='20/60')
    def test_limit_exceeded(self):
        client = self.mock_redis(count=21, ttl=30)
        self.client.force_authenticate(self.user)

        with patch('core.rate_limiting.get_redis_client', return_value=client):
            response = self.client.post(self.url, self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(response['Retry-After'], '30')
        self.assertEqual(response['X-RateLimit-Remaining'], '0')
        self.assertEqual(Order.objects.count(), 0)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 10)

    @override_settings(RATE_LIMIT_ENABLED=True)
    def test_fails_open_when_redis_down(self):
        client = MagicMock()
        client.incr.side_effect = redis.ConnectionError('connection refused')
        self.client.force_authenticate(self.user)

        with patch('core.rate_limiting.get_redis_client', return_value=client):
            response = self.client.post(self.url, self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('X-RateLimit-Limit', response)

    @override_settings(RATE_LIMIT_ENABLED=True)
    def test_reads_not_limited(self):
        client = self.mock_redis(count=100)
        self.client.force_authenticate(self.admin)

        with patch('core.rate_limiting.get_redis_client', return_value=client):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        client.incr.assert_not_called()

    def test_disabled_in_settings(self):
        self.client.force_authenticate(self.user)

        with patch('core.rate_limiting.get_redis_client') as get_client:
            response = self.client.post(self.url, self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        get_client.assert_not_called()


class HealthCheckTestCase(SimpleTestCase):

    def test_health_check(self):
        response = self.client.get(reverse('health-check'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {'status': 'healthy', 'service': 'pharmacy-api'})
