"""Request dependencies: session identity, services and admin access."""

import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from haskify.db.context import SessionContext
from haskify.services import Services

SESSION_HEADER = "X-Session-Id"
MAX_SESSION_ID_LENGTH = 128


def get_services(request: Request) -> Services:
    """Service container built at startup (see ``haskify.main``)."""
    return request.app.state.services  # type: ignore[no-any-return]


async def get_session_context(
    x_session_id: Annotated[str | None, Header()] = None,
) -> SessionContext:
    """Extract the client session from the ``X-Session-Id`` header.

    Raises:
        HTTPException: 400 if the header is missing, blank or too long
    """
    session_id = (x_session_id or "").strip()
    if not session_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{SESSION_HEADER} header required",
        )
    if len(session_id) > MAX_SESSION_ID_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{SESSION_HEADER} must be at most {MAX_SESSION_ID_LENGTH} characters",
        )
    return SessionContext(session_id=session_id)


async def require_admin(
    services: Annotated[Services, Depends(get_services)],
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Require ``Authorization: Bearer <ADMIN_TOKEN>`` for system-material routes.

    Raises:
        HTTPException: 503 if no admin token is configured, 401 if it does not match
    """
    configured = services.settings.admin_token
    if configured is None or not configured.get_secret_value():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="System material administration is not configured",
        )

    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[7:]  # Strip "Bearer "
    if not secrets.compare_digest(token, configured.get_secret_value()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
            headers={"WWW-Authenticate": "Bearer"},
        )


ServicesDep = Annotated[Services, Depends(get_services)]
SessionDep = Annotated[SessionContext, Depends(get_session_context)]
