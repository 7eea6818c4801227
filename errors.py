"""Gateway exception hierarchy."""

from typing import Optional


class GatewayError(Exception):
    """Base error rendered to the caller as an ``{error, message}`` body."""

    status_code = 500

    def __init__(self, error: str, message: Optional[str] = None) -> None:
        super().__init__(message or error)
        self.error = error
        self.message = message


class BadRequest(GatewayError):
    status_code = 400


class NotFound(GatewayError):
    status_code = 404


class MethodNotAllowed(GatewayError):
    status_code = 405


class BackendFailure(GatewayError):
    """The inference backend rejected or failed the call."""

    status_code = 500


class InternalError(GatewayError):
    status_code = 500


class InferenceError(Exception):
    """Raised by inference backends when a run fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        suffix = f" (status {status_code})" if status_code is not None else ""
        super().__init__(f"{message}{suffix}")
        self.status_code = status_code
