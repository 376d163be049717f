"""
Domain error base class and the DRF exception handler that renders it.

Service-layer errors carry their own HTTP status and a human-readable
message. Views let them propagate; ``api_exception_handler`` turns them into
``{"error": ..., "detail": ..., **extra}`` responses.
"""
import logging
from typing import Any, Dict

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""
    status_code = status.HTTP_400_BAD_REQUEST
    title = 'Error'

    def extra(self) -> Dict[str, Any]:
        """Additional fields included in the API error payload."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {'error': self.title, 'detail': str(self)}
        payload.update(self.extra())
        return payload


def api_exception_handler(exc, context):
    """Render ``ServiceError`` subclasses; defer everything else to DRF."""
    if isinstance(exc, ServiceError):
        view = context.get('view')
        logger.warning(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc}"
        )
        return Response(exc.to_dict(), status=exc.status_code)

    return exception_handler(exc, context)
