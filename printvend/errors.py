# printvend/errors.py
"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``main`` turns them into ``{"detail": message}``
responses with the class's ``status_code``.
"""


class PrintVendError(Exception):
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(PrintVendError):
    """Missing file, malformed metadata, nonsensical quantities."""
    status_code = 400


class NotFoundError(PrintVendError):
    status_code = 404


class OrderNotFound(NotFoundError):
    def __init__(self, message: str = "Order not found"):
        super().__init__(message)


class CouponNotFound(NotFoundError):
    # reported as a bad request on the coupon endpoints
    status_code = 400

    def __init__(self, message: str = "Invalid coupon"):
        super().__init__(message)


class ConflictError(PrintVendError):
    status_code = 400


class AlreadyUsed(ConflictError):
    def __init__(self, message: str = "Already Used"):
        super().__init__(message)


class OrderExpired(ConflictError):
    def __init__(self, message: str = "Code Expired"):
        super().__init__(message)


class CouponInactive(ConflictError):
    def __init__(self, message: str = "Coupon inactive"):
        super().__init__(message)


class CouponAlreadyUsed(ConflictError):
    def __init__(self, message: str = "Coupon already used"):
        super().__init__(message)


class InsufficientCoins(ConflictError):
    def __init__(self, message: str = "Wallet balance changed; retry checkout"):
        super().__init__(message)


class QrCollision(ConflictError):
    status_code = 409

    def __init__(self, message: str = "QR code collision; retry checkout"):
        super().__init__(message)


class UpstreamError(PrintVendError):
    """Database or blob store failure. Message is safe to show to clients."""
    status_code = 500
