"""
Retry policies built on tenacity.
"""
import logging

from django.conf import settings
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


def retryable_attempts(*exception_types, max_attempts=None):
    """
    Build a ``Retrying`` iterator that re-runs a block on ``exception_types``.

    Usage:
        for attempt in retryable_attempts(DuplicateOrderNumber):
            with attempt:
                ...

    The last failure is re-raised unchanged once attempts run out.
    """
    if max_attempts is None:
        max_attempts = getattr(settings, 'ORDER_NUMBER_MAX_ATTEMPTS', 3)

    return Retrying(
        reraise=True,
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=0.01, min=0.01, max=0.2),
        retry=retry_if_exception_type(exception_types),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
