"""Error taxonomy for the storefront service.

Services raise these; the application maps them to HTTP responses in
``main.py``.
"""


class StorefrontError(Exception):
    """Base class for storefront errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(StorefrontError):
    """Bad numeric, enum or form input."""

    status_code = 400


class InvalidPrice(ValidationError):
    """A price, markup or coefficient that is not a usable number."""


class CartTokenError(ValidationError):
    """Cart cookie that cannot be decoded or encoded."""


class NotFoundError(StorefrontError):
    """Missing product or order."""

    status_code = 404


class AuthorizationError(StorefrontError):
    """Authenticated user lacks admin rights."""

    status_code = 403


class UpstreamError(StorefrontError):
    """External service call failed."""

    status_code = 500


class PersistenceError(StorefrontError):
    """Database failure."""

    status_code = 500
