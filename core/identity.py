"""
Identity provider: maps the authenticated Django user to an acting identity.

Staff users act as ``admin``; every other authenticated user is a
``customer``.
"""
from typing import NamedTuple, Optional

ADMIN = 'admin'
CUSTOMER = 'customer'


class Identity(NamedTuple):
    id: Optional[int]
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN


def identity_for_user(user) -> Identity:
    if user is None or not user.is_authenticated:
        return Identity(id=None, role=CUSTOMER)
    return Identity(id=user.pk, role=ADMIN if user.is_staff else CUSTOMER)


def current_user(request) -> Identity:
    """Return the identity acting on ``request``."""
    return identity_for_user(getattr(request, 'user', None))
