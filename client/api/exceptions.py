"""Errors raised by the detection service client."""


class ApiError(Exception):
    """Base detection service exception."""


class ApiTransportError(ApiError):
    """Raised when the service cannot be reached or the request times out."""


class ApiResponseError(ApiError):
    """Raised on a non-2xx status or a payload that does not match the contract."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
