"""Error taxonomy shared by the credential and ownership layers.

Every public operation either returns a value or raises one of the errors
below. Each error knows the HTTP status it maps to and how to render itself
as a response body; main.py registers a single handler for the base class.

Two of the errors are deliberately uninformative:
- InvalidCredentials covers unknown identifier, wrong password and disabled
  account with one constant body.
- AccessDenied covers missing and foreign resources with one constant
  message; only the correlation id differs between occurrences.
"""

from typing import Any, Dict, List, Optional

from fastapi import status


class SecureShopError(Exception):
    """Base class for errors that cross the API boundary."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"
    message: str = "Request failed"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}

    def headers(self) -> Optional[Dict[str, str]]:
        return None


class ValidationFailed(SecureShopError):
    """Field-level, user-correctable input problems.

    Attributes:
        fields: Mapping of field name to the list of problems with that field
    """

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_failed"
    message = "Request validation failed"

    def __init__(self, fields: Dict[str, List[str]], message: Optional[str] = None):
        self.fields = fields
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["fields"] = self.fields
        return body


class DuplicateIdentity(SecureShopError):
    """Registration collided with an existing username or email."""

    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_identity"

    _MESSAGES = {
        "username": "Username is already taken",
        "email": "Email address is already registered",
    }

    def __init__(self, field: str):
        self.field = field
        super().__init__(self._MESSAGES.get(field, "Identity already exists"))

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["field"] = self.field
        return body


class InvalidCredentials(SecureShopError):
    """Login failed. Intentionally carries no detail about why."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalid_credentials"
    message = "Invalid username or password"

    def __init__(self):
        super().__init__()


class NotAuthenticated(SecureShopError):
    """No valid session accompanied a request to a protected route."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "not_authenticated"
    message = "Authentication required"

    def __init__(self):
        super().__init__()

    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class AccessDenied(SecureShopError):
    """Missing resource, foreign resource or insufficient role.

    The real reason is only ever logged server-side next to correlation_id.
    """

    status_code = status.HTTP_403_FORBIDDEN
    code = "access_denied"
    message = "Access denied"

    def __init__(self, correlation_id: str):
        self.correlation_id = correlation_id
        super().__init__()

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["correlation_id"] = self.correlation_id
        return body


class InvalidTransition(SecureShopError):
    """Requested order status change is not allowed by the state machine."""

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"
    message = "The order cannot move to the requested status"


class UnexpectedFailure(SecureShopError):
    """Internal fault. Only the correlation id is exposed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "unexpected_failure"
    message = "An unexpected error occurred. Please try again later."

    def __init__(self, correlation_id: str):
        self.correlation_id = correlation_id
        super().__init__()

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["correlation_id"] = self.correlation_id
        return body


class NotFound(SecureShopError):
    """Non-sensitive resource (catalog entry, admin lookup) does not exist.

    Orders never use this: a missing order is reported as AccessDenied.
    """

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Resource not found"


class TooManyAttempts(SecureShopError):
    """Login throttled for this client; retry_after is in seconds."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "too_many_attempts"
    message = "Too many login attempts. Please try again later."

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__()

    def headers(self) -> Optional[Dict[str, str]]:
        return {"Retry-After": str(self.retry_after)}
