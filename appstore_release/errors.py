"""
Error taxonomy for the App Store release client.

Every exception raised by this package derives from ``AppStoreConnectError``.
HTTP failures are ``ApiError`` instances; the two status codes the release
workflow branches on get their own subclasses:

    - ``ConflictError`` (409): unreleased version already exists, whatsNew is
      not editable yet, beta notification already sent
    - ``NotFoundError`` (404): also raised when a resolver query matches nothing

Resolver queries matching more than one resource raise ``AmbiguousResultError``
and build processing failures raise ``BuildProcessingError``.
"""

from typing import Any, Dict, List, Optional


class AppStoreConnectError(Exception):
    """Base class for all client errors"""


class ApiError(AppStoreConnectError):
    """A request answered with a status code >= 400"""

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = list(errors or [])

    @staticmethod
    def from_response(context: str, status_code: int, errors: List[str]) -> "ApiError":
        message = f"{context}. Status code: {status_code}"
        if errors:
            message = f"{message}. Errors: {', '.join(errors)}"

        if status_code == 404:
            return NotFoundError(message, errors=errors)
        if status_code == 409:
            return ConflictError(message, status_code=status_code, errors=errors)
        return ApiError(message, status_code=status_code, errors=errors)


class ConflictError(ApiError):
    """HTTP 409 returned by the backend"""


class NotFoundError(ApiError):
    """No resource matched a lookup, or the backend answered 404"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None, errors: Optional[List[str]] = None) -> None:
        super().__init__(message, status_code=404, errors=errors)
        self.context = dict(context or {})


class AmbiguousResultError(AppStoreConnectError):
    """A filtered lookup matched more than one resource"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})


class BuildProcessingError(AppStoreConnectError):
    """Build processing ended in a failure state or was not observed to finish"""

    def __init__(self, processing_state: Any, message: Optional[str] = None) -> None:
        self.processing_state = processing_state
        self.message = message or f"Build processing failed with state {_state_name(processing_state)}"
        super().__init__(self.message)


class BuildProcessingCancelledError(BuildProcessingError):
    """The processing monitor was cancelled before a terminal state"""


def _state_name(state: Any) -> str:
    return getattr(state, "value", state)
