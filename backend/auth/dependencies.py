from collections.abc import Callable

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from backend.auth import jwt_handler
from backend.models.user import Role

security = HTTPBearer(auto_error=False)


class TokenUser(BaseModel):
    """Caller identity as carried by the bearer token."""
    user_id: int
    role: Role


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> TokenUser:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or not role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        return TokenUser(user_id=int(subject), role=role)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


def require_roles(*roles: Role) -> Callable[..., TokenUser]:
    allowed = set(roles)

    def _check_role(current_user: TokenUser = Depends(get_current_user)) -> TokenUser:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return current_user

    return _check_role


require_student = require_roles(Role.STUDENT)
require_mentor = require_roles(Role.MENTOR)
require_admin = require_roles(Role.ADMIN)
