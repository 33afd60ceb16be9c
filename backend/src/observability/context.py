"""Per-request context: request ids and correlation ids.

Request ids tie together every log line written while serving one request.
A client may supply its own through X-Request-ID; anything that is not a
short token of safe characters is replaced, so the header cannot be used to
forge log lines.

Correlation ids are minted for each denial or internal failure. They are the
only diagnostic handle a client ever receives and are logged next to the
real reason.
"""

import re
import uuid
from contextvars import ContextVar, Token
from typing import Optional

REQUEST_ID_HEADER = "X-Request-ID"

_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,64}")

_request_id: ContextVar[Optional[str]] = ContextVar("secureshop_request_id", default=None)


def accept_request_id(candidate: Optional[str]) -> str:
    """Return the client's request id if it is safe to log, else a fresh one."""
    if candidate and _SAFE_REQUEST_ID.fullmatch(candidate):
        return candidate
    return str(uuid.uuid4())


def bind_request_id(request_id: str) -> Token:
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def current_request_id() -> Optional[str]:
    return _request_id.get()


def new_correlation_id() -> str:
    """Opaque id returned to the client with a 403 or 500."""
    return uuid.uuid4().hex
