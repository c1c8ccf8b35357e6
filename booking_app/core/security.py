from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from booking_app.api.dependencies import get_auth
from booking_app.core.errors import ForbiddenError, UnauthorizedError
from booking_app.models.db_models import Role, User
from booking_app.services.auth_service import AuthProvider

bearer = HTTPBearer(auto_error=False)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> str:
    if not credentials or not credentials.credentials:
        raise UnauthorizedError()
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_bearer_token),
    auth: AuthProvider = Depends(get_auth),
) -> User:
    """Resolves the bearer token to a user with a role; 401 otherwise."""
    user = await auth.resolve(token)
    if not user:
        raise UnauthorizedError()
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != Role.ADMIN:
        raise ForbiddenError()
    return user
