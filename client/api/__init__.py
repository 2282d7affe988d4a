"""Detection service client package."""

from .client import DetectionApiClient
from .exceptions import ApiError, ApiResponseError, ApiTransportError

__all__ = [
    "ApiError",
    "ApiResponseError",
    "ApiTransportError",
    "DetectionApiClient",
]
