"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from messaging_core.application.messaging_service import MessagingService
from messaging_core.domain.entities import User
from messaging_core.infrastructure.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_messaging_service(request: Request) -> MessagingService:
    """Return the service instance owned by the running application."""

    return request.app.state.messaging_service


def resolve_current_user(token: str | None, service: MessagingService) -> User:
    """Resolve the authenticated user for the provided token."""

    if not token:
        raise _unauthorized("Not authenticated")
    try:
        payload = decode_access_token(token)
    except ValueError as exc:
        raise _unauthorized("Invalid credentials") from exc

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise _unauthorized("Invalid credentials")

    user = service.get_user(user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    service: MessagingService = Depends(get_messaging_service),
) -> User:
    """Return the authenticated user from the bearer token."""

    token = credentials.credentials if credentials is not None else None
    return resolve_current_user(token, service)
