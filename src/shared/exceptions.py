"""Domain error taxonomy shared by the Ordering and Payments contexts.

Input and lookup errors are protean's ``ValidationError`` and
``ObjectNotFoundError`` (both carry a ``messages`` dict), so errors raised by
the order model's fields and by checkout validation reach the API the same
way. Integrity failures on the webhook path are never raised to the remote
caller; they are logged and turned into a generic response instead.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError

__all__ = [
    "Forbidden",
    "InvalidAddress",
    "InvalidLineItems",
    "InvalidTotal",
    "InvalidTransition",
    "ObjectNotFoundError",
    "OrderAlreadyPaid",
    "StorefrontError",
    "ValidationError",
]


class InvalidLineItems(ValidationError):
    pass


class InvalidAddress(ValidationError):
    pass


class InvalidTotal(ValidationError):
    pass


class StorefrontError(Exception):
    """Base class for authorization and state errors."""


class Forbidden(StorefrontError):
    """The requesting principal does not own the resource."""


class InvalidTransition(StorefrontError):
    """The order's current status does not allow the requested change."""


class OrderAlreadyPaid(InvalidTransition):
    """Payment for the order has already been completed."""
