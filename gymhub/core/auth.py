import uuid
from dataclasses import dataclass

from fastapi import HTTPException, status
from jose import JWTError, jwt
from starlette.requests import Request

from gymhub.core.config import get_settings
from gymhub.platform.security.context import ROLES


@dataclass
class AuthUser:
    sub: str
    role: str


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(request: Request) -> AuthUser:
    auth_header = request.headers.get("authorization", "")
    token = auth_header[len("Bearer ") :] if auth_header.startswith("Bearer ") else ""

    if not token:
        raise _unauthorized("Unauthorized")

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise _unauthorized("Invalid token")

    subject = payload.get("sub")
    role = payload.get("role")
    if not isinstance(subject, str) or role not in ROLES:
        raise _unauthorized("Invalid token")
    try:
        uuid.UUID(subject)
    except ValueError:
        raise _unauthorized("Invalid token")

    request.state.user_id = subject
    return AuthUser(sub=subject, role=role)


def issue_token(sub: str, role: str) -> str:
    settings = get_settings()
    return jwt.encode({"sub": sub, "role": role}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
