"""
Domain errors raised by the order workflow and the surrounding services.
The API layer turns them into JSON responses using ``status_code``.
"""


class ShopError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidQuantity(ShopError):
    status_code = 400


class ProductNotFound(ShopError):
    status_code = 404


class InsufficientStock(ShopError):
    status_code = 409


class ProductExpired(ShopError):
    status_code = 409


class OrderNotFound(ShopError):
    status_code = 404


class UserNotFound(ShopError):
    status_code = 404


class StorageError(ShopError):
    status_code = 500


class IdentityProviderError(ShopError):
    status_code = 502
