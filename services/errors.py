"""
Service error hierarchy.

Every failure a service surfaces is one of these kinds. Routers map them onto
the normalized error envelope with the carried status code; nothing else is
caught at the HTTP layer except by the uncaught-exception middleware.
"""

from typing import Optional


class ServiceError(Exception):
    """Base exception for entitlement, quota and moderation failures."""

    error_code = "SERVICE_ERROR"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.message}


class InvalidInputError(ServiceError):
    """Malformed or missing identifiers or fields."""

    error_code = "INVALID_INPUT"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        d = super().to_dict()
        if self.field is not None:
            d["field"] = self.field
        return d


class NotFoundError(ServiceError):
    error_code = "NOT_FOUND"
    status_code = 404


class ForbiddenError(ServiceError):
    error_code = "FORBIDDEN"
    status_code = 403


class DuplicateOrderError(ServiceError):
    error_code = "DUPLICATE_ORDER"
    status_code = 409

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} already exists")


class InvalidTransitionError(ServiceError):
    """Raised when a ledger record is asked to leave a terminal status."""

    error_code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, order_id: str, current_status: str, target_status: str):
        self.order_id = order_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Payment {order_id} cannot move from {current_status} to {target_status}"
        )


class VerificationFailedError(ServiceError):
    error_code = "VERIFICATION_FAILED"
    status_code = 400


class QuotaExceededError(ServiceError):
    error_code = "QUOTA_EXCEEDED"
    status_code = 403

    def __init__(self, message: str, daily_limit: int):
        self.daily_limit = daily_limit
        super().__init__(message)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["daily_limit"] = self.daily_limit
        d["can_upgrade"] = True
        return d


class UpstreamError(ServiceError):
    """A collaborator call failed and there is no safe fallback."""

    error_code = "UPSTREAM_ERROR"
    status_code = 502

    def __init__(self, collaborator: str, detail: str):
        self.collaborator = collaborator
        self.detail = detail
        super().__init__(f"{collaborator} call failed: {detail}")
