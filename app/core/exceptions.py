"""
Business-rule exceptions raised by the service layer.
FastAPI renders them as regular HTTPExceptions, so callers get a consistent
status code and a structured ``detail`` for every rejection.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base exception for the storefront API"""

    def __init__(
        self,
        status_code: int,
        detail: Any,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class BadRequestException(AppException):
    """400 Bad Request"""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, error_code)


class NotFoundException(AppException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail, error_code)


class ConflictException(AppException):
    """409 Conflict"""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(status.HTTP_409_CONFLICT, detail, error_code)


class ValidationFailedException(AppException):
    """
    400 with every failed rule. ``detail.message`` is the first reason,
    ``detail.errors`` the full list for detailed display.
    """

    def __init__(self, errors: List[str], error_code: str = "VALIDATION_FAILED"):
        self.errors = list(errors)
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            {"message": self.errors[0] if self.errors else "Validation failed", "errors": self.errors},
            error_code,
        )


class InsufficientStockException(AppException):
    """409 when a reservation exceeds available stock"""

    def __init__(self, available: int, requested: int, error_code: str = "INSUFFICIENT_STOCK"):
        self.available = available
        self.requested = requested
        super().__init__(
            status.HTTP_409_CONFLICT,
            {
                "message": f"Insufficient stock. Available: {available}, Requested: {requested}",
                "available": available,
                "requested": requested,
            },
            error_code,
        )


class TrackingDisabledException(AppException):
    """400 when a tracked-only operation hits an untracked product"""

    def __init__(
        self,
        detail: str = "Inventory tracking not enabled for this product",
        error_code: str = "TRACKING_DISABLED",
    ):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, error_code)


class UnauthorizedException(AppException):
    """401 Unauthorized"""

    def __init__(self, detail: str = "User not authenticated", error_code: str = "UNAUTHORIZED"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, detail, error_code)


class ForbiddenException(AppException):
    """403 Forbidden"""

    def __init__(self, detail: str = "Permission denied", error_code: str = "FORBIDDEN"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail, error_code)
