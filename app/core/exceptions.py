from typing import Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    code = "SERVICE_ERROR"

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class PlacementError(ServiceError):
    """A recoverable rejection from the placement engine. Nothing was mutated."""

    code = "PLACEMENT_ERROR"
    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code or self.default_status)


class DuplicateApplication(PlacementError):
    code = "DUPLICATE_APPLICATION"
    default_status = status.HTTP_409_CONFLICT


class QuotaExceeded(PlacementError):
    code = "QUOTA_EXCEEDED"
    default_status = status.HTTP_409_CONFLICT


class IneligibleLevel(PlacementError):
    code = "INELIGIBLE_LEVEL"
    default_status = status.HTTP_403_FORBIDDEN


class NotOpen(PlacementError):
    code = "NOT_OPEN"
    default_status = status.HTTP_409_CONFLICT


class AlreadyFinalized(PlacementError):
    code = "ALREADY_FINALIZED"
    default_status = status.HTTP_409_CONFLICT


class AlreadyRequested(PlacementError):
    code = "ALREADY_REQUESTED"
    default_status = status.HTTP_409_CONFLICT


class InvalidTransition(PlacementError):
    code = "INVALID_TRANSITION"
    default_status = status.HTTP_409_CONFLICT


class InvalidOpportunity(PlacementError):
    code = "INVALID_OPPORTUNITY"
    default_status = status.HTTP_400_BAD_REQUEST


class PermissionDenied(PlacementError):
    code = "PERMISSION_DENIED"
    default_status = status.HTTP_403_FORBIDDEN


class NotFound(PlacementError):
    code = "NOT_FOUND"
    default_status = status.HTTP_404_NOT_FOUND
