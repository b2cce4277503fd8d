from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from portal.auth import jwt_handler

LOGIN_PATH = "/login"

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionContext:
    """The authenticated caller of the current request."""

    user_id: str
    email: str | None
    access_token: str


def login_required(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": message, "redirect": LOGIN_PATH},
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_session_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> SessionContext:
    if credentials is None:
        raise login_required("Not authenticated")

    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except Exception as exc:
        raise login_required("Invalid token") from exc

    user_id = payload.get("sub")
    if not user_id:
        raise login_required("Invalid token subject")

    return SessionContext(user_id=user_id, email=payload.get("email"), access_token=token)
