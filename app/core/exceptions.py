# app/core/exceptions.py
from typing import Any, Dict

from fastapi import status


class AppError(Exception):
    """Ошибка предметной области, отдаваемая клиенту как структурированный JSON"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    message: str = "Internal Server Error"

    def __init__(self, message: str = None, code: str = None, **extra: Any):
        self.message = message or self.message
        self.code = code or self.code
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, **self.extra}


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    message = "Invalid or expired token"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "Access denied"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    message = "Conflict"


class RateLimited(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"
    message = "Too many requests"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    message = "Invalid request"


class PaymentDeclined(AppError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    code = "PAYMENT_DECLINED"
    message = "Payment declined"


class CardDeclined(PaymentDeclined):
    code = "CARD_DECLINED"
    message = "Card declined"


class InsufficientFunds(PaymentDeclined):
    code = "INSUFFICIENT_FUNDS"
    message = "Insufficient funds"


class VerificationRequired(PaymentDeclined):
    code = "VERIFICATION_REQUIRED"
    message = "Card verification required"

    def __init__(self, message: str = None, code: str = None, **extra: Any):
        super().__init__(message, code, requiresVerification=True, **extra)


class PaymentFailed(PaymentDeclined):
    code = "PAYMENT_FAILED"
    message = "Payment failed"


class PaymentProcessingFailed(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "PAYMENT_PROCESSING_FAILED"
    message = "Payment processing failed"


class ServiceUnavailable(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "SERVICE_UNAVAILABLE"
    message = "Service unavailable"


class TooManyAttempts(ValidationError):
    code = "TOO_MANY_ATTEMPTS"
    message = "Too many failed attempts. Please request a new verification code."
