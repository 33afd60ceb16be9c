"""Redirect endpoint guarded by the host allowlist."""

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse, RedirectResponse

from config import settings
from observability.logging_config import get_logger
from observability.metrics import access_denied_total
from .redirects import is_safe_redirect

logger = get_logger(__name__)

router = APIRouter(tags=["Redirect"])


@router.get("/redirect")
def redirect(url: str = Query(..., max_length=2048)):
    """Redirect to url if it is site-relative or on an allowed host.

    Rejected targets get a generic 400; the target is not echoed back.
    """
    if is_safe_redirect(url, settings.ALLOWED_REDIRECT_HOSTS):
        return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    access_denied_total.labels(reason="unsafe_redirect").inc()
    logger.warning("Blocked redirect", extra={"reason": "unsafe_redirect"})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "redirect_blocked", "message": "Redirect target is not allowed"},
    )
