"""
JWT verification for teacher-facing endpoints.

Login and token issuance belong to the external auth service. This module only
verifies the access tokens it hands out; ``create_access_token`` exists for
operator scripts and tests that need a token signed with the shared secret.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from assessment_engine.config import get_settings


class TeacherClaims(BaseModel):
    """Decoded access token payload."""

    sub: str  # Teacher ID
    email: Optional[str] = None
    role: str = "teacher"
    exp: datetime
    jti: Optional[str] = None

    @property
    def teacher_id(self) -> uuid.UUID:
        return uuid.UUID(self.sub)


class JWTManager:
    """Signs and verifies HS256 access tokens with the shared secret."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: int = 60,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.access_token_expire_minutes = access_token_expire_minutes

    def create_access_token(
        self,
        teacher_id: uuid.UUID,
        email: Optional[str] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))
        payload = {
            "sub": str(teacher_id),
            "email": email,
            "role": "teacher",
            "exp": expire,
            "iat": now,
            "jti": str(uuid.uuid4()),
            "type": "access",
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_access_token(self, token: str) -> Optional[TeacherClaims]:
        """
        Verify and decode an access token.

        Returns:
            TeacherClaims if valid, None otherwise
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

        if payload.get("type", "access") != "access" or "exp" not in payload:
            return None
        try:
            uuid.UUID(str(payload.get("sub")))
        except ValueError:
            return None

        return TeacherClaims(
            sub=payload["sub"],
            email=payload.get("email"),
            role=payload.get("role", "teacher"),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            jti=payload.get("jti"),
        )


_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create the default JWT manager."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


def create_access_token(teacher_id: uuid.UUID, email: Optional[str] = None) -> str:
    return get_jwt_manager().create_access_token(teacher_id, email)


def verify_access_token(token: str) -> Optional[TeacherClaims]:
    return get_jwt_manager().verify_access_token(token)
