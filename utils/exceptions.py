# utils/exceptions.py
#
# Service-layer errors. Every class is an HTTPException so FastAPI renders
# it directly; main.py wraps the detail in the standard response envelope.

from typing import Iterable, Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"

    def __init__(self, message: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(AppError):
    default_message = "Invalid request"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Order not found"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not enough permissions"


class InvalidTransition(AppError):
    def __init__(self, current: str, target: str, allowed: Iterable[str], field: str = "status"):
        allowed = list(allowed)
        self.current = current
        self.target = target
        self.allowed = allowed
        super().__init__(
            f'Cannot change {field} from "{current}" to "{target}". '
            f'Valid transitions from "{current}" are: {", ".join(allowed) or "none"}'
        )


class SignatureMismatch(AppError):
    default_message = "Payment signature verification failed"


class AlreadyPaid(AppError):
    default_message = "Order is already paid"


class AlreadyRefunded(AppError):
    default_message = "Order has already been refunded"


class RefundExceedsTotal(AppError):
    default_message = "Refund amount cannot exceed order total"


class ConcurrentModification(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Order was modified by another request, please retry"


class PaymentGatewayError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Payment gateway request failed"


class ServerError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server Error"
