"""Central route authorization table.

Every route of the application is classified here, in one place, instead of
by per-handler decorators. Patterns are matched with fnmatch against the
route template (``/api/v1/orders/{order_id}``), first match wins. A route
that matches nothing requires an authenticated ordinary user.

Templates are recorded per endpoint when a router is mounted with
include_router, so the lookup does not depend on whether the matched route
object carries the mount prefix.
"""

from fnmatch import fnmatchcase
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import APIRouter

from .roles import RouteAccess

API_PREFIX = "/api/v1"

ROUTE_POLICY: List[Tuple[str, RouteAccess]] = [
    # Infrastructure
    ("/", RouteAccess.PUBLIC),
    ("/health", RouteAccess.PUBLIC),
    ("/metrics", RouteAccess.PUBLIC),
    ("/docs*", RouteAccess.PUBLIC),
    ("/redoc", RouteAccess.PUBLIC),
    ("/openapi.json", RouteAccess.PUBLIC),

    # Credential flows
    (f"{API_PREFIX}/auth/register", RouteAccess.PUBLIC),
    (f"{API_PREFIX}/auth/login", RouteAccess.PUBLIC),
    (f"{API_PREFIX}/auth/*", RouteAccess.REQUIRES_ORDINARY),

    # Catalog browsing
    (f"{API_PREFIX}/products", RouteAccess.PUBLIC),
    (f"{API_PREFIX}/products/*", RouteAccess.PUBLIC),

    # Redirect helper
    (f"{API_PREFIX}/redirect", RouteAccess.PUBLIC),

    # Owner-scoped orders
    (f"{API_PREFIX}/orders", RouteAccess.REQUIRES_ORDINARY),
    (f"{API_PREFIX}/orders/*", RouteAccess.REQUIRES_ORDINARY),

    # Administration
    (f"{API_PREFIX}/admin", RouteAccess.REQUIRES_ADMINISTRATOR),
    (f"{API_PREFIX}/admin/*", RouteAccess.REQUIRES_ADMINISTRATOR),
]

DEFAULT_ACCESS = RouteAccess.REQUIRES_ORDINARY


def explicit_access(path: str) -> Optional[RouteAccess]:
    """Access tag of the first pattern matching path, or None."""
    for pattern, access in ROUTE_POLICY:
        if fnmatchcase(path, pattern):
            return access
    return None


def resolve_access(path: str) -> RouteAccess:
    """Return the access tag for a route path, defaulting to REQUIRES_ORDINARY."""
    access = explicit_access(path)
    return DEFAULT_ACCESS if access is None else access


# endpoint -> full route template, filled by include_router
ROUTE_TEMPLATES: Dict[Callable, str] = {}


def include_router(app, router: APIRouter, prefix: str = "") -> None:
    """Mount router on app and record the full template of each endpoint."""
    app.include_router(router, prefix=prefix)
    for route in router.routes:
        endpoint = getattr(route, "endpoint", None)
        if endpoint is not None:
            ROUTE_TEMPLATES[endpoint] = prefix + route.path


def route_template(route, fallback: str) -> str:
    """Full template for a matched route; app-level routes use their own path."""
    endpoint = getattr(route, "endpoint", None)
    if endpoint in ROUTE_TEMPLATES:
        return ROUTE_TEMPLATES[endpoint]
    return getattr(route, "path", fallback)
