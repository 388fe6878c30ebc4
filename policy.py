"""Session gate: one place that decides which routes need a logged-in caller.

Every request passes through ``session_gate`` before routing. The gate reads
the session token once, attaches the resulting identity (or None) to
``request.state.identity`` and then applies ``ROUTE_POLICY``. Handlers get
the identity through ``dependencies.get_identity`` instead of looking at the
token themselves.
"""
import enum
import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from dependencies import identify_request

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
LOGIN_PAGE = "/"
HOME_PAGE = "/dashboard"


class Access(str, enum.Enum):
    PUBLIC = "public"
    SESSION = "session"
    OWNER = "session+ownership"


# Anything under /api that is not listed here requires a session.
ROUTE_POLICY = {
    ("POST", "/api/auth/login"): Access.PUBLIC,
    ("POST", "/api/auth/logout"): Access.PUBLIC,
    ("POST", "/api/register"): Access.PUBLIC,
    ("POST", "/api/contact"): Access.PUBLIC,
    ("GET", "/api/contact"): Access.SESSION,
    ("PATCH", "/api/contact"): Access.SESSION,
    ("DELETE", "/api/contact"): Access.SESSION,
    ("POST", "/api/blood-donation"): Access.PUBLIC,
    ("GET", "/api/blood-donation"): Access.SESSION,
    ("PATCH", "/api/blood-donation"): Access.OWNER,
    ("DELETE", "/api/blood-donation"): Access.OWNER,
    ("POST", "/api/events"): Access.SESSION,
    ("GET", "/api/events"): Access.SESSION,
    ("PATCH", "/api/events"): Access.SESSION,
    ("DELETE", "/api/events/{event_id}"): Access.SESSION,
    ("POST", "/api/users"): Access.SESSION,
    ("GET", "/api/users"): Access.SESSION,
    ("GET", "/api/profile"): Access.SESSION,
    ("GET", "/api/dashboard"): Access.SESSION,
}

PUBLIC_PAGES = {"/", "/health", "/docs", "/docs/oauth2-redirect", "/redoc", "/openapi.json"}


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


def _template_matches(template: str, path: str) -> bool:
    expected = template.strip("/").split("/")
    actual = path.strip("/").split("/")
    if len(expected) != len(actual):
        return False
    return all(
        (part.startswith("{") and part.endswith("}") and value) or part == value
        for part, value in zip(expected, actual)
    )


def is_api_path(path: str) -> bool:
    path = _normalize(path)
    return path == API_PREFIX or path.startswith(API_PREFIX + "/")


def resolve_access(method: str, path: str) -> Access:
    path = _normalize(path)
    method = method.upper()
    for (route_method, template), access in ROUTE_POLICY.items():
        if route_method == method and _template_matches(template, path):
            return access
    if is_api_path(path):
        return Access.SESSION
    if path in PUBLIC_PAGES:
        return Access.PUBLIC
    return Access.SESSION


def _is_navigation(request: Request) -> bool:
    return request.method == "GET" and "text/html" in request.headers.get("accept", "")


def check_owner(record_owner_id: Optional[int], claimed_owner_id: Optional[int]) -> None:
    """Ownership half of ``Access.OWNER``: a claimed owner must be the record's owner."""
    if claimed_owner_id is not None and claimed_owner_id != record_owner_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not own this record"
        )


def _unauthenticated() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": "Not authenticated"},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def session_gate(request: Request, call_next):
    # CORS preflight is answered by CORSMiddleware before it gets here
    if request.method == "OPTIONS":
        return await call_next(request)

    identity = identify_request(request)
    request.state.identity = identity
    path = _normalize(request.url.path)
    access = resolve_access(request.method, path)

    if is_api_path(path):
        if access is not Access.PUBLIC and identity is None:
            logger.warning(f"Unauthenticated {request.method} {path}")
            return _unauthenticated()
        return await call_next(request)

    if _is_navigation(request):
        if path == LOGIN_PAGE and identity is not None:
            return RedirectResponse(HOME_PAGE)
        if access is not Access.PUBLIC and identity is None:
            logger.info(f"Redirecting unauthenticated visit to {path}")
            return RedirectResponse(LOGIN_PAGE)
    elif access is not Access.PUBLIC and identity is None:
        return _unauthenticated()

    return await call_next(request)
