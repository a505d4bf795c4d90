from decimal import Decimal
from enum import Enum


class MarketError(Exception):
    """
    Base for errors scoped to a single user action.
    Rendered by the app-level handler as
    {"detail", "code", "retryable", **extra}.
    """
    status_code = 500
    code = "ERROR"
    retryable = False

    def __init__(self, detail: str, **extra):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_dict(self) -> dict:
        body = {
            "detail": self.detail,
            "code": self.code,
            "retryable": self.retryable,
        }
        body.update(self.extra)
        return body


class ValidationError(MarketError):
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthorizationError(MarketError):
    status_code = 403
    code = "AUTHORIZATION_ERROR"


class NotFoundError(MarketError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(MarketError):
    status_code = 409
    code = "CONFLICT"
    retryable = True


class TransientError(MarketError):
    status_code = 503
    code = "TRANSIENT_ERROR"
    retryable = True


# ==============================
# Purchase rejections
# ==============================

class RejectReason(str, Enum):
    INVALID_QUANTITY = "INVALID_QUANTITY"
    LISTING_UNAVAILABLE = "LISTING_UNAVAILABLE"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"


_REJECT_KIND = {
    RejectReason.INVALID_QUANTITY: ValidationError,
    RejectReason.LISTING_UNAVAILABLE: NotFoundError,
    RejectReason.INSUFFICIENT_STOCK: ConflictError,
}

_REJECT_DETAIL = {
    RejectReason.INVALID_QUANTITY: "Quantity must be greater than zero",
    RejectReason.LISTING_UNAVAILABLE: "Listing is not available",
    RejectReason.INSUFFICIENT_STOCK: "Insufficient stock",
}


class PurchaseRejected(MarketError):
    code = "PURCHASE_REJECTED"

    def __init__(self, reason: RejectReason, available: Decimal | None = None):
        extra = {"reason": reason.value}
        if available is not None:
            extra["available"] = float(available)
        super().__init__(_REJECT_DETAIL[reason], **extra)
        self.reason = reason
        self.available = available

        kind = _REJECT_KIND[reason]
        self.status_code = kind.status_code
        self.retryable = kind.retryable

    @property
    def kind(self) -> type:
        return _REJECT_KIND[self.reason]
