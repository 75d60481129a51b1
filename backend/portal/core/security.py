from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import ExpiredSignatureError, JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from portal.core.config import settings
from portal.core.exceptions import UnauthorizedError, ForbiddenError
from portal.core.logging_config import logger, set_user_id

# Bearer token security; missing headers are reported through UnauthorizedError
security = HTTPBearer(auto_error=False)

ROLE_STUDENT = "student"
ROLE_FACULTY = "faculty"
ROLE_ADMIN = "admin"


@dataclass
class AuthSession:
    """Identity of the caller as asserted by the identity provider token"""

    user_id: str
    role: str
    email: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_faculty(self) -> bool:
        return self.role in (ROLE_FACULTY, ROLE_ADMIN)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed session token (used by local tooling and tests)"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    if settings.JWT_AUDIENCE and "aud" not in to_encode:
        to_encode["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and verify a session token"""
    if not settings.JWT_SECRET_KEY:
        logger.error("JWT_SECRET_KEY is not configured; rejecting all sessions")
        raise UnauthorizedError("Authentication is not configured")

    options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except ExpiredSignatureError:
        logger.log_auth_event("decode", False, reason="expired")
        raise UnauthorizedError("Session has expired")
    except JWTError as e:
        logger.log_auth_event("decode", False, reason=str(e))
        raise UnauthorizedError("Could not validate credentials")


def _extract_role(payload: Dict[str, Any]) -> str:
    # Identity providers put the role either at the top level or in public metadata
    role = payload.get("role")
    if not role:
        metadata = payload.get("public_metadata") or payload.get("metadata") or {}
        role = metadata.get("role") if isinstance(metadata, dict) else None
    return str(role or ROLE_STUDENT).lower()


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthSession:
    """Resolve the authenticated caller or raise UnauthorizedError"""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()

    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token payload")

    set_user_id(str(user_id))
    return AuthSession(
        user_id=str(user_id),
        role=_extract_role(payload),
        email=payload.get("email"),
        claims=payload,
    )


async def require_faculty(session: AuthSession = Depends(get_current_session)) -> AuthSession:
    """Only faculty (or admins) may use faculty endpoints"""
    if not session.is_faculty:
        raise ForbiddenError("Faculty access required")
    return session
