from typing import Any, Optional

GENERIC_ERROR = "Request failed. Please try again."
NETWORK_ERROR = "Network error. Please check your connection and try again."
INVALID_RESPONSE = "Invalid response from server. Please try again."


class ApiError(Exception):
    """
    Raised for any failed backend call.

    status is the HTTP status code, or 0 when no response was received
    (transport failure) or the response could not be understood.
    """

    def __init__(self, message: str, status: int = 0, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class NotFoundError(ApiError):
    def __init__(self, message: str, data: Any = None) -> None:
        super().__init__(message, 404, data)


class UnauthorizedError(ApiError):
    def __init__(self, message: str, data: Any = None) -> None:
        super().__init__(message, 401, data)


class ValidationError(Exception):
    """Client-side input check failed; nothing was sent to the backend."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


def error_for_status(status: int, message: str, data: Any = None) -> ApiError:
    if status == 404:
        return NotFoundError(message, data)
    if status == 401:
        return UnauthorizedError(message, data)
    return ApiError(message, status, data)
