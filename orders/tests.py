"""
Tests for the order workflow.

Test Cases:
1. Order placed with sufficient stock, stock deducted, totals reconcile
2. Out of stock / unknown product / malformed requests rejected with no writes
3. Atomic rollback when a write fails mid-way
4. Order number collisions retried with a fresh number
5. Status transitions, cancellation restores stock exactly once
6. Concurrent orders never oversell
7. HTTP API permissions and error payloads
"""
import re
import threading
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from inventory.exceptions import OutOfStock, ProductNotFound
from inventory.models import Category, Product
from inventory.services import adjust_quantity as real_adjust_quantity
from orders.exceptions import (
    AlreadyCancelled,
    DuplicateOrderNumber,
    InvalidOrder,
    InvalidStatus,
    OrderNotFound,
)
from orders.models import Order, OrderItem
from orders.services import (
    generate_order_number,
    get_order,
    list_orders,
    list_user_orders,
    order_statistics,
    place_order,
    update_order_status,
)

User = get_user_model()

CUSTOMER = {'name': 'Jane', 'address': '123 Rd', 'email': 'jane@example.com', 'phone': '0771234567'}


class OrderTestMixin:
    """Shared catalog fixtures."""

    def create_catalog(self):
        self.user = User.objects.create_user(username='jane', password='pw')
        self.category = Category.objects.create(name='Medications')
        self.product1 = Product.objects.create(
            name='Paracetamol 500mg',
            category=self.category,
            quantity=100,
            price=Decimal('10.00')
        )
        self.product2 = Product.objects.create(
            name='Vitamin C 1000mg',
            category=self.category,
            quantity=50,
            price=Decimal('25.00')
        )
        self.product3 = Product.objects.create(
            name='Cough Syrup',
            category=self.category,
            quantity=10,  # Low stock
            price=Decimal('15.50')
        )

    def assertStock(self, product, expected):
        product.refresh_from_db()
        self.assertEqual(product.quantity, expected)


class PlaceOrderTestCase(OrderTestMixin, TestCase):
    """Test cases for order placement."""

    def setUp(self):
        self.create_catalog()

    def test_order_placed_with_sufficient_stock(self):
        """
        Given: Products with sufficient stock
        When: Placing an order within stock limits
        Then: Order is PENDING, totals add up, stock is deducted
        """
        items = [
            {'product_id': self.product1.id, 'quantity': 5},
            {'product_id': self.product2.id, 'quantity': 3}
        ]

        order = place_order(self.user.id, CUSTOMER, items)

        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertEqual(order.user_id, self.user.id)
        self.assertEqual(order.customer_name, 'Jane')
        self.assertEqual(order.payment_method, Order.PaymentMethod.CASH)
        self.assertEqual(order.payment_status, Order.PaymentStatus.PENDING)

        # (5 * 10) + (3 * 25) = 125
        self.assertEqual(order.total_amount, Decimal('125.00'))
        self.assertEqual(len(order.items.all()), 2)

        self.assertStock(self.product1, 95)
        self.assertStock(self.product2, 47)

    def test_pharmacy_scenario(self):
        """Stock 10 at 100.00, order 3 -> total 300.00 and stock 7; cancel -> stock 10."""
        p1 = Product.objects.create(
            name='P1', category=self.category, quantity=10, price=Decimal('100.00')
        )

        order = place_order(self.user.id, {'name': 'Jane', 'address': '123 Rd'},
                            [{'product_id': p1.id, 'quantity': 3}])

        self.assertEqual(order.total_amount, Decimal('300.00'))
        self.assertStock(p1, 7)

        update_order_status(order.id, Order.Status.CANCELLED)
        self.assertStock(p1, 10)

    def test_total_reconciles_with_items(self):
        items = [
            {'product_id': self.product1.id, 'quantity': 7},
            {'product_id': self.product2.id, 'quantity': 2},
            {'product_id': self.product3.id, 'quantity': 3},
        ]

        order = place_order(self.user.id, CUSTOMER, items)

        item_total = sum(item.subtotal for item in order.items.all())
        self.assertEqual(order.total_amount, item_total)
        for item in order.items.all():
            self.assertEqual(item.subtotal, item.price * item.quantity)
        self.assertEqual(order.total_amount, Decimal('166.50'))

    def test_items_snapshot_price_and_name(self):
        order = place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id, 'quantity': 2}])

        self.product1.price = Decimal('99.00')
        self.product1.name = 'Paracetamol (renamed)'
        self.product1.save()

        item = get_order(order.id).items.get()
        self.assertEqual(item.price, Decimal('10.00'))
        self.assertEqual(item.subtotal, Decimal('20.00'))
        self.assertEqual(item.product_name, 'Paracetamol 500mg')
        self.assertEqual(get_order(order.id).total_amount, Decimal('20.00'))

    def test_order_with_exact_stock(self):
        place_order(self.user.id, CUSTOMER, [{'product_id': self.product3.id, 'quantity': 10}])

        self.assertStock(self.product3, 0)

    def test_out_of_stock_rejects_whole_order(self):
        """
        Given: Cough Syrup has only 10 units
        When: Ordering a valid item plus 15 units of Cough Syrup
        Then: OutOfStock is raised, no order exists and no stock changed
        """
        items = [
            {'product_id': self.product1.id, 'quantity': 5},
            {'product_id': self.product2.id, 'quantity': 10},
            {'product_id': self.product3.id, 'quantity': 15}
        ]

        with self.assertRaises(OutOfStock) as context:
            place_order(self.user.id, CUSTOMER, items)

        error = context.exception
        self.assertEqual(error.product_name, 'Cough Syrup')
        self.assertEqual(error.available, 10)
        self.assertEqual(error.requested, 15)
        self.assertIn('Cough Syrup', str(error))

        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)
        self.assertStock(self.product1, 100)
        self.assertStock(self.product2, 50)
        self.assertStock(self.product3, 10)

    def test_unknown_product(self):
        items = [
            {'product_id': self.product1.id, 'quantity': 1},
            {'product_id': 99999, 'quantity': 5}
        ]

        with self.assertRaises(ProductNotFound) as context:
            place_order(self.user.id, CUSTOMER, items)

        self.assertEqual(context.exception.product_id, 99999)
        self.assertIn('not found', str(context.exception))
        self.assertEqual(Order.objects.count(), 0)
        self.assertStock(self.product1, 100)

    def test_rollback_when_write_fails_midway(self):
        """A failure after some stock was deducted leaves nothing behind."""
        calls = []

        def failing_adjust(product_id, delta):
            calls.append(product_id)
            if len(calls) == 2:
                raise RuntimeError('database went away')
            return real_adjust_quantity(product_id, delta)

        items = [
            {'product_id': self.product1.id, 'quantity': 5},
            {'product_id': self.product2.id, 'quantity': 5}
        ]

        with patch('orders.services.adjust_quantity', side_effect=failing_adjust):
            with self.assertRaises(RuntimeError):
                place_order(self.user.id, CUSTOMER, items)

        self.assertEqual(len(calls), 2)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)
        self.assertStock(self.product1, 100)
        self.assertStock(self.product2, 50)

    def test_validation_error_empty_items(self):
        with self.assertRaises(InvalidOrder) as context:
            place_order(self.user.id, CUSTOMER, [])

        self.assertIn('at least one item', str(context.exception))

    def test_validation_error_invalid_quantity(self):
        for quantity in (0, -2, '3', 1.5, True):
            with self.subTest(quantity=quantity):
                with self.assertRaises(InvalidOrder):
                    place_order(self.user.id, CUSTOMER,
                                [{'product_id': self.product1.id, 'quantity': quantity}])

        self.assertStock(self.product1, 100)

    def test_validation_error_missing_fields(self):
        with self.assertRaises(InvalidOrder):
            place_order(self.user.id, CUSTOMER, [{'quantity': 1}])
        with self.assertRaises(InvalidOrder):
            place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id}])

    def test_validation_error_product_id_type(self):
        for product_id in (str(self.product1.id), 'abc', None, True, 1.0):
            with self.subTest(product_id=product_id):
                with self.assertRaises(InvalidOrder) as context:
                    place_order(self.user.id, CUSTOMER, [{'product_id': product_id, 'quantity': 1}])
                self.assertIn('product_id must be an integer', str(context.exception))

        self.assertEqual(Order.objects.count(), 0)
        self.assertStock(self.product1, 100)

    def test_validation_error_duplicate_products(self):
        items = [
            {'product_id': self.product1.id, 'quantity': 5},
            {'product_id': self.product1.id, 'quantity': 3}  # Duplicate
        ]

        with self.assertRaises(InvalidOrder) as context:
            place_order(self.user.id, CUSTOMER, items)

        self.assertIn('duplicate', str(context.exception).lower())

    def test_validation_error_missing_customer_details(self):
        items = [{'product_id': self.product1.id, 'quantity': 1}]

        for customer in ({'name': 'Jane'}, {'address': '123 Rd'}, {'name': '  ', 'address': '123 Rd'}, None,
                         {'name': 123, 'address': '123 Rd'}, {'name': 'Jane', 'address': ['123 Rd']}):
            with self.subTest(customer=customer):
                with self.assertRaises(InvalidOrder) as context:
                    place_order(self.user.id, customer, items)
                self.assertIn('name and address', str(context.exception))

        with self.assertRaises(InvalidOrder):
            place_order(self.user.id, {'name': 'Jane', 'address': '123 Rd', 'phone': 771234567}, items)

        self.assertEqual(Order.objects.count(), 0)

    def test_validation_error_payment_method(self):
        with self.assertRaises(InvalidOrder):
            place_order(self.user.id, CUSTOMER,
                        [{'product_id': self.product1.id, 'quantity': 1}],
                        payment_method='bitcoin')


class OrderNumberTestCase(OrderTestMixin, TestCase):
    """Test cases for order number generation and collision handling."""

    def setUp(self):
        self.create_catalog()

    def test_order_number_format(self):
        self.assertRegex(generate_order_number(), r'^ORD-\d{13}-\d{6}$')

    def test_orders_get_distinct_numbers(self):
        numbers = {
            place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id, 'quantity': 1}]).order_number
            for _ in range(10)
        }

        self.assertEqual(len(numbers), 10)
        self.assertStock(self.product1, 90)

    def test_collision_retried_with_new_number(self):
        with patch('orders.services.generate_order_number', return_value='ORD-1-000001'):
            first = place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id, 'quantity': 1}])

        with patch('orders.services.generate_order_number',
                   side_effect=['ORD-1-000001', 'ORD-2-000002']) as generator:
            second = place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id, 'quantity': 4}])

        self.assertEqual(generator.call_count, 2)
        self.assertEqual(first.order_number, 'ORD-1-000001')
        self.assertEqual(second.order_number, 'ORD-2-000002')
        self.assertEqual(Order.objects.count(), 2)
        # The failed attempt left no deduction behind
        self.assertStock(self.product1, 95)
        self.assertEqual(OrderItem.objects.filter(order=second).count(), 1)

    @override_settings(ORDER_NUMBER_MAX_ATTEMPTS=3)
    def test_collision_gives_up_after_max_attempts(self):
        with patch('orders.services.generate_order_number', return_value='ORD-1-000001'):
            place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id, 'quantity': 1}])

            with self.assertRaises(DuplicateOrderNumber) as context:
                place_order(self.user.id, CUSTOMER, [{'product_id': self.product2.id, 'quantity': 1}])

        self.assertEqual(context.exception.to_dict()['retryable'], True)
        self.assertEqual(Order.objects.count(), 1)
        self.assertStock(self.product1, 99)
        self.assertStock(self.product2, 50)


class OrderStatusTestCase(OrderTestMixin, TestCase):
    """Test cases for status transitions and cancellation."""

    def setUp(self):
        self.create_catalog()
        self.product4 = Product.objects.create(
            name='Baby Wipes', category=self.category, quantity=20, price=Decimal('4.00')
        )
        self.order = place_order(self.user.id, CUSTOMER, [
            {'product_id': self.product4.id, 'quantity': 5},
            {'product_id': self.product1.id, 'quantity': 10},
        ])

    def test_cancellation_restores_stock(self):
        self.assertStock(self.product4, 15)

        order = update_order_status(self.order.id, Order.Status.CANCELLED)

        self.assertEqual(order.status, Order.Status.CANCELLED)
        self.assertStock(self.product4, 20)
        self.assertStock(self.product1, 100)

    def test_double_cancel_rejected_and_stock_restored_once(self):
        update_order_status(self.order.id, Order.Status.CANCELLED)

        with self.assertRaises(AlreadyCancelled):
            update_order_status(self.order.id, Order.Status.CANCELLED)

        self.assertStock(self.product4, 20)
        self.assertStock(self.product1, 100)

    def test_full_lifecycle(self):
        for new_status in (Order.Status.PROCESSING, Order.Status.SHIPPED, Order.Status.DELIVERED):
            order = update_order_status(self.order.id, new_status)
            self.assertEqual(order.status, new_status)

        # Only cancellation touches stock
        self.assertStock(self.product4, 15)

    def test_cancel_while_processing(self):
        update_order_status(self.order.id, Order.Status.PROCESSING)
        update_order_status(self.order.id, Order.Status.CANCELLED)

        self.assertStock(self.product4, 20)

    def test_illegal_transitions(self):
        illegal = [
            (Order.Status.PENDING, Order.Status.SHIPPED),
            (Order.Status.PENDING, Order.Status.DELIVERED),
            (Order.Status.PENDING, Order.Status.PENDING),
            (Order.Status.SHIPPED, Order.Status.CANCELLED),
            (Order.Status.SHIPPED, Order.Status.PENDING),
            (Order.Status.DELIVERED, Order.Status.CANCELLED),
            (Order.Status.DELIVERED, Order.Status.PENDING),
            (Order.Status.CANCELLED, Order.Status.PENDING),
        ]
        for current, new_status in illegal:
            with self.subTest(current=current, new_status=new_status):
                Order.objects.filter(pk=self.order.pk).update(status=current)
                with self.assertRaises(InvalidStatus):
                    update_order_status(self.order.id, new_status)

        self.assertStock(self.product4, 15)

    def test_unknown_status(self):
        with self.assertRaises(InvalidStatus):
            update_order_status(self.order.id, 'lost')

    def test_unknown_order(self):
        with self.assertRaises(OrderNotFound):
            update_order_status(99999, Order.Status.PROCESSING)

    def test_cancel_paid_order_marks_refund(self):
        Order.objects.filter(pk=self.order.pk).update(payment_status=Order.PaymentStatus.PAID)

        order = update_order_status(self.order.id, Order.Status.CANCELLED)

        self.assertEqual(order.payment_status, Order.PaymentStatus.REFUNDED)

    def test_cancel_with_deleted_product(self):
        self.product4.delete()

        update_order_status(self.order.id, Order.Status.CANCELLED)

        item = OrderItem.objects.get(order=self.order, product_name='Baby Wipes')
        self.assertIsNone(item.product_id)
        self.assertStock(self.product1, 100)


class OrderQueryTestCase(OrderTestMixin, TestCase):
    """Test cases for order reads and statistics."""

    def setUp(self):
        self.create_catalog()
        self.other = User.objects.create_user(username='sam', password='pw')
        self.order1 = place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id, 'quantity': 1}])
        self.order2 = place_order(self.other.id, CUSTOMER, [{'product_id': self.product2.id, 'quantity': 2}])
        self.order3 = place_order(self.user.id, CUSTOMER, [{'product_id': self.product3.id, 'quantity': 3}])
        update_order_status(self.order3.id, Order.Status.CANCELLED)

    def test_get_order_includes_items(self):
        order = get_order(self.order2.id)

        self.assertEqual(order.order_number, self.order2.order_number)
        self.assertEqual([item.quantity for item in order.items.all()], [2])

    def test_get_unknown_order(self):
        with self.assertRaises(OrderNotFound):
            get_order(99999)

    def test_list_orders_with_status_filter(self):
        self.assertEqual(list_orders().count(), 3)
        self.assertEqual(
            {o.id for o in list_orders(Order.Status.PENDING)},
            {self.order1.id, self.order2.id}
        )
        self.assertEqual([o.id for o in list_orders(Order.Status.CANCELLED)], [self.order3.id])

    def test_list_orders_invalid_status(self):
        with self.assertRaises(InvalidStatus):
            list(list_orders('lost'))

    def test_list_user_orders(self):
        self.assertEqual({o.id for o in list_user_orders(self.user.id)}, {self.order1.id, self.order3.id})
        self.assertEqual([o.id for o in list_user_orders(self.other.id)], [self.order2.id])

    def test_order_statistics(self):
        stats = order_statistics()

        self.assertEqual(stats['total_orders'], 3)
        self.assertEqual(stats['pending_orders'], 2)
        # Cancelled order excluded: 10.00 + 2 * 25.00
        self.assertEqual(stats['total_revenue'], Decimal('60.00'))
        self.assertIn({'status': 'cancelled', 'count': 1}, stats['by_status'])
        self.assertIn({'status': 'pending', 'count': 2}, stats['by_status'])


class OrderModelTestCase(OrderTestMixin, TestCase):
    """Test cases for Order model helpers."""

    def setUp(self):
        self.create_catalog()

    def test_transition_table(self):
        order = Order(status=Order.Status.PENDING)
        self.assertTrue(order.can_transition_to(Order.Status.PROCESSING))
        self.assertTrue(order.can_transition_to('cancelled'))
        self.assertFalse(order.can_transition_to(Order.Status.DELIVERED))

        order.status = Order.Status.DELIVERED
        self.assertFalse(order.can_transition_to(Order.Status.CANCELLED))

    def test_order_item_subtotal(self):
        order = Order.objects.create(
            order_number='ORD-TEST-1',
            user=self.user,
            customer_name='Jane',
            customer_address='123 Rd',
        )

        item = OrderItem.objects.create(
            order=order,
            product=self.product1,
            product_name=self.product1.name,
            quantity=3,
            price=Decimal('25.50')
        )

        self.assertEqual(item.subtotal, Decimal('76.50'))


class ConcurrentOrderTestCase(TransactionTestCase):
    """
    Test concurrent order handling to verify row locks prevent overselling.
    Uses TransactionTestCase for proper multi-threading support.
    """

    def setUp(self):
        self.user = User.objects.create_user(username='racer', password='pw')
        self.category = Category.objects.create(name='Concurrent Test Category')
        self.product = Product.objects.create(
            name='Limited Stock Product',
            category=self.category,
            quantity=10,
            price=Decimal('50.00')
        )

    def test_concurrent_orders_no_overselling(self):
        """
        Given: 10 units in stock
        When: Two concurrent orders of 6 units each
        Then: Exactly one succeeds, the other fails with OutOfStock,
              final stock is 4
        """
        results = {}
        barrier = threading.Barrier(2)

        def order(key):
            try:
                barrier.wait()
                place_order(self.user.id, CUSTOMER, [{'product_id': self.product.id, 'quantity': 6}])
                results[key] = 'placed'
            except OutOfStock:
                results[key] = 'out_of_stock'
            finally:
                connection.close()

        threads = [threading.Thread(target=order, args=(key,)) for key in ('order1', 'order2')]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(results.values()), ['out_of_stock', 'placed'])
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 4)
        self.assertEqual(Order.objects.count(), 1)

    def test_concurrent_orders_get_distinct_numbers(self):
        self.product.quantity = 100
        self.product.save()
        numbers = []
        lock = threading.Lock()

        def order():
            try:
                placed = place_order(self.user.id, CUSTOMER, [{'product_id': self.product.id, 'quantity': 1}])
                with lock:
                    numbers.append(placed.order_number)
            finally:
                connection.close()

        threads = [threading.Thread(target=order) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(numbers), 8)
        self.assertEqual(len(set(numbers)), 8)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 92)

    def test_concurrent_cancellations_restore_stock_once(self):
        order = place_order(self.user.id, CUSTOMER, [{'product_id': self.product.id, 'quantity': 6}])
        results = []
        lock = threading.Lock()
        barrier = threading.Barrier(2)

        def cancel():
            try:
                barrier.wait()
                update_order_status(order.id, Order.Status.CANCELLED)
                outcome = 'cancelled'
            except AlreadyCancelled:
                outcome = 'already_cancelled'
            finally:
                connection.close()
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=cancel) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(results), ['already_cancelled', 'cancelled'])
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 10)


class OrderAPITestCase(APITestCase):
    """Test cases for the order HTTP API."""

    def setUp(self):
        self.customer = User.objects.create_user(username='jane', password='pw')
        self.other = User.objects.create_user(username='sam', password='pw')
        self.admin = User.objects.create_user(username='admin', password='pw', is_staff=True)
        self.category = Category.objects.create(name='Medications')
        self.product = Product.objects.create(
            name='P1', category=self.category, quantity=10, price=Decimal('100.00')
        )
        self.list_url = reverse('orders:order-list')

    def order_payload(self, quantity=3, **overrides):
        payload = {
            'customer_name': 'Jane',
            'customer_address': '123 Rd',
            'items': [{'product_id': self.product.id, 'quantity': quantity}],
        }
        payload.update(overrides)
        return payload

    def test_place_order(self):
        self.client.force_authenticate(self.customer)

        response = self.client.post(self.list_url, self.order_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['total_amount'], '300.00')
        self.assertEqual(response.data['user_id'], self.customer.id)
        self.assertEqual(response.data['item_count'], 1)
        self.assertEqual(response.data['items'][0]['subtotal'], '300.00')
        self.assertTrue(re.match(r'^ORD-\d+-\d{6}$', response.data['order_number']))
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 7)

    def test_place_order_requires_authentication(self):
        response = self.client.post(self.list_url, self.order_payload(), format='json')

        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))
        self.assertEqual(Order.objects.count(), 0)

    def test_place_order_out_of_stock(self):
        self.client.force_authenticate(self.customer)

        response = self.client.post(self.list_url, self.order_payload(quantity=11), format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Out Of Stock')
        self.assertEqual(response.data['product_name'], 'P1')
        self.assertEqual(response.data['available'], 10)
        self.assertEqual(response.data['requested'], 11)
        self.assertEqual(Order.objects.count(), 0)

    def test_place_order_unknown_product(self):
        self.client.force_authenticate(self.customer)
        payload = self.order_payload()
        payload['items'] = [{'product_id': 424242, 'quantity': 1}]

        response = self.client.post(self.list_url, payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['product_id'], 424242)

    def test_place_order_validation(self):
        self.client.force_authenticate(self.customer)

        missing_address = self.order_payload()
        del missing_address['customer_address']
        self.assertEqual(
            self.client.post(self.list_url, missing_address, format='json').status_code,
            status.HTTP_400_BAD_REQUEST
        )
        self.assertEqual(
            self.client.post(self.list_url, self.order_payload(items=[]), format='json').status_code,
            status.HTTP_400_BAD_REQUEST
        )
        duplicate = self.order_payload(items=[
            {'product_id': self.product.id, 'quantity': 1},
            {'product_id': self.product.id, 'quantity': 1},
        ])
        response = self.client.post(self.list_url, duplicate, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid Order')

        self.assertEqual(Order.objects.count(), 0)

    def test_list_orders_admin_only(self):
        place_order(self.customer.id, CUSTOMER, [{'product_id': self.product.id, 'quantity': 1}])

        self.client.force_authenticate(self.customer)
        self.assertEqual(self.client.get(self.list_url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.get(self.list_url, {'status': 'pending'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(len(response.data[0]['items']), 1)

        response = self.client.get(self.list_url, {'status': 'lost'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_my_orders(self):
        mine = place_order(self.customer.id, CUSTOMER, [{'product_id': self.product.id, 'quantity': 1}])
        place_order(self.other.id, CUSTOMER, [{'product_id': self.product.id, 'quantity': 1}])

        self.client.force_authenticate(self.customer)
        response = self.client.get(reverse('orders:my-orders'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o['id'] for o in response.data], [mine.id])

    def test_order_detail_visibility(self):
        order = place_order(self.customer.id, CUSTOMER, [{'product_id': self.product.id, 'quantity': 1}])
        url = reverse('orders:order-detail', args=[order.id])

        self.client.force_authenticate(self.customer)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)

        self.client.force_authenticate(self.other)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)

        self.client.force_authenticate(self.admin)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)

    def test_admin_updates_status(self):
        order = place_order(self.customer.id, CUSTOMER, [{'product_id': self.product.id, 'quantity': 4}])
        url = reverse('orders:order-status', args=[order.id])
        self.client.force_authenticate(self.admin)

        response = self.client.put(url, {'status': 'processing'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'processing')

        response = self.client.put(url, {'status': 'delivered'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid Status')

        response = self.client.patch(url, {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 10)

        response = self.client.patch(url, {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 10)

    def test_status_update_unknown_order(self):
        self.client.force_authenticate(self.admin)

        response = self.client.put(
            reverse('orders:order-status', args=[99999]), {'status': 'processing'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_customer_can_only_cancel_own_order(self):
        order = place_order(self.customer.id, CUSTOMER, [{'product_id': self.product.id, 'quantity': 2}])
        url = reverse('orders:order-status', args=[order.id])

        self.client.force_authenticate(self.other)
        self.assertEqual(
            self.client.put(url, {'status': 'cancelled'}, format='json').status_code,
            status.HTTP_404_NOT_FOUND
        )

        self.client.force_authenticate(self.customer)
        self.assertEqual(
            self.client.put(url, {'status': 'shipped'}, format='json').status_code,
            status.HTTP_403_FORBIDDEN
        )
        response = self.client.put(url, {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 10)

    def test_stats_admin_only(self):
        place_order(self.customer.id, CUSTOMER, [{'product_id': self.product.id, 'quantity': 2}])
        url = reverse('orders:order-stats')

        self.client.force_authenticate(self.customer)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 1)
        self.assertEqual(response.data['total_revenue'], '200.00')


class OrderTaskTestCase(OrderTestMixin, TestCase):
    """Test cases for order notification tasks."""

    def setUp(self):
        self.create_catalog()

    def test_confirmation_queued_after_commit(self):
        with patch('orders.services.send_order_confirmation') as task:
            with self.captureOnCommitCallbacks(execute=True):
                order = place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id, 'quantity': 1}])

        task.delay.assert_called_once_with(order.id)

    def test_status_update_queued_after_commit(self):
        order = place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id, 'quantity': 1}])

        with patch('orders.services.send_order_status_update') as task:
            with self.captureOnCommitCallbacks(execute=True):
                update_order_status(order.id, Order.Status.PROCESSING)

        task.delay.assert_called_once_with(order.id)

    def test_queue_failure_does_not_fail_order(self):
        with patch('orders.services.send_order_confirmation') as task:
            task.delay.side_effect = ConnectionError('broker down')
            with self.captureOnCommitCallbacks(execute=True):
                order = place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id, 'quantity': 1}])

        self.assertTrue(Order.objects.filter(pk=order.pk).exists())
        self.assertStock(self.product1, 99)

    def test_send_order_confirmation(self):
        from orders.tasks import send_order_confirmation

        order = place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id, 'quantity': 2}])

        result = send_order_confirmation(order.id)
        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['order_id'], order.id)

        update_order_status(order.id, Order.Status.CANCELLED)
        self.assertEqual(send_order_confirmation(order.id)['status'], 'skipped')

        self.assertEqual(send_order_confirmation(99999)['status'], 'error')

    def test_send_order_status_update(self):
        from orders.tasks import send_order_status_update

        order = place_order(self.user.id, CUSTOMER, [{'product_id': self.product1.id, 'quantity': 2}])
        update_order_status(order.id, Order.Status.PROCESSING)

        result = send_order_status_update(order.id)

        self.assertEqual(result['order_status'], 'processing')
