"""
Identity - verification of teacher bearer tokens issued by the auth service.
"""

from assessment_engine.kernel.identity.jwt import (
    JWTManager,
    TeacherClaims,
    create_access_token,
    verify_access_token,
)

__all__ = [
    "JWTManager",
    "TeacherClaims",
    "create_access_token",
    "verify_access_token",
]
