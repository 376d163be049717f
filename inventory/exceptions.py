"""
Errors raised by the Product Store.
"""
from rest_framework import status

from core.exceptions import ServiceError


class ProductNotFound(ServiceError):
    """Raised when a product identifier does not resolve."""
    status_code = status.HTTP_400_BAD_REQUEST
    title = 'Product Not Found'

    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")

    def extra(self):
        return {'product_id': self.product_id}


class OutOfStock(ServiceError):
    """Raised when a requested quantity exceeds the available stock."""
    status_code = status.HTTP_409_CONFLICT
    title = 'Out Of Stock'

    def __init__(self, product_id: int, product_name: str, requested: int, available: int):
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_name}. "
            f"Available: {available}, Requested: {requested}"
        )

    def extra(self):
        return {
            'product_id': self.product_id,
            'product_name': self.product_name,
            'available': self.available,
            'requested': self.requested,
        }
