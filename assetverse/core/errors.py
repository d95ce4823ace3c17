# assetverse/core/errors.py
from typing import Optional


class AssetVerseError(Exception):
    """Base class for errors surfaced to the API layer."""
    status_code: int = 500
    default_detail: str = "An internal server error occurred."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(AssetVerseError):
    status_code = 404
    default_detail = "Record not found."


class ConflictError(AssetVerseError):
    status_code = 409
    default_detail = "Request conflicts with the current state."


class InsufficientQuantityError(ConflictError):
    default_detail = "Asset is out of stock."


class DuplicateRecordError(ConflictError):
    """Raised by a store when a unique index rejects an insert."""
    default_detail = "Record already exists."


class ValidationFailedError(AssetVerseError):
    status_code = 400
    default_detail = "Invalid data."


class UnauthorizedError(AssetVerseError):
    status_code = 401
    default_detail = "Unauthorized Access!"


class ForbiddenError(AssetVerseError):
    status_code = 403
    default_detail = "Operation not permitted."


class ServiceError(AssetVerseError):
    """Store or provider failure. Only the generic detail reaches the caller."""
    status_code = 500


class StoreError(ServiceError):
    default_detail = "Database operation failed."


class PaymentProviderError(ServiceError):
    default_detail = "Payment provider is unavailable."
