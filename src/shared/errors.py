"""Error taxonomy shared by the catalogue and ordering contexts.

Every storefront rejection is a Protean ``ValidationError`` carrying a
``{field: [message]}`` dictionary, so it flows through the same handlers as
input-shape failures. ``status_code`` is the HTTP status the API layer maps
the error to.
"""

from protean.exceptions import ValidationError


class StorefrontError(ValidationError):
    """Base class for typed storefront failures."""

    status_code = 400

    def __init__(self, messages, **context):
        super().__init__(messages)
        self.context = context

    @property
    def code(self) -> str:
        return type(self).__name__


class NotFound(StorefrontError):
    status_code = 404


class InvalidQuantity(StorefrontError):
    pass


class ProductUnavailable(StorefrontError):
    status_code = 409


class InsufficientStock(StorefrontError):
    status_code = 409


class InvalidCoupon(StorefrontError):
    pass


class EmptyCart(StorefrontError):
    pass


class IllegalTransition(StorefrontError):
    status_code = 409


class StockReleaseFailed(StorefrontError):
    status_code = 503


class Forbidden(StorefrontError):
    status_code = 403
