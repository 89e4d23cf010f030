class CartServiceException(Exception):
    """Base for every condition the cart core reports to its callers."""

    status_code = 500
    default_message = "Cart service error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def code(self) -> str:
        return type(self).__name__


class CartNotFound(CartServiceException):
    status_code = 404
    default_message = "Cart not found"


class CartExpired(CartServiceException):
    status_code = 410
    default_message = "Cart has expired"


class ItemNotFound(CartServiceException):
    status_code = 404
    default_message = "Item not found in cart"


class InvalidQuantity(CartServiceException):
    status_code = 400
    default_message = "Quantity must be greater than zero"


class InvalidPrice(CartServiceException):
    status_code = 400
    default_message = "Price must be greater than zero"


class ProductUnavailable(CartServiceException):
    status_code = 400
    default_message = "Product not available or insufficient stock"


class CouponInvalid(CartServiceException):
    status_code = 400
    default_message = "Coupon not valid or expired"


class CartEmpty(CartServiceException):
    status_code = 400
    default_message = "Cart is empty"


class InvalidMerge(CartServiceException):
    status_code = 400
    default_message = "Carts cannot be merged"


class CartNotActive(CartServiceException):
    status_code = 409
    default_message = "Cart is not active"


class ConcurrentModification(CartServiceException):
    status_code = 409
    default_message = "Cart was modified by another request, try again"


class TransportError(CartServiceException):
    """Store or product service could not be reached. Safe to retry."""

    status_code = 503
    default_message = "Upstream dependency unavailable"


class InternalError(CartServiceException):
    status_code = 500
    default_message = "Internal error"
