"""
Errors raised by the order workflow.
"""
from rest_framework import status

from core.exceptions import ServiceError


class InvalidOrder(ServiceError):
    """Raised when an order request is empty or malformed."""
    title = 'Invalid Order'


class OrderNotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    title = 'Order Not Found'

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class InvalidStatus(ServiceError):
    """Raised for unknown statuses and disallowed status transitions."""
    title = 'Invalid Status'


class AlreadyCancelled(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    title = 'Already Cancelled'

    def __init__(self, order_number):
        self.order_number = order_number
        super().__init__(f"Order {order_number} is already cancelled")


class DuplicateOrderNumber(ServiceError):
    """Raised when a generated order number collides with an existing one. Retryable."""
    status_code = status.HTTP_409_CONFLICT
    title = 'Duplicate Order Number'

    def __init__(self, order_number):
        self.order_number = order_number
        super().__init__(f"Order number {order_number} already exists, please retry")

    def extra(self):
        return {'retryable': True}
