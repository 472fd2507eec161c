"""Unit tests for bearer token verification."""

import uuid
from datetime import timedelta

import pytest
from jose import jwt

from assessment_engine.kernel.identity.jwt import JWTManager

SECRET = "test-secret-key-for-testing-only"


@pytest.fixture
def jwt_manager() -> JWTManager:
    return JWTManager(secret_key=SECRET, algorithm="HS256", access_token_expire_minutes=30)


class TestJWT:
    def test_round_trip(self, jwt_manager):
        teacher_id = uuid.uuid4()
        token = jwt_manager.create_access_token(teacher_id, email="t@example.com")
        claims = jwt_manager.verify_access_token(token)

        assert claims is not None
        assert claims.teacher_id == teacher_id
        assert claims.email == "t@example.com"
        assert claims.role == "teacher"

    def test_expired_token(self, jwt_manager):
        token = jwt_manager.create_access_token(uuid.uuid4(), expires_delta=timedelta(seconds=-5))
        assert jwt_manager.verify_access_token(token) is None

    def test_wrong_secret(self, jwt_manager):
        token = JWTManager(secret_key="another-secret", algorithm="HS256").create_access_token(uuid.uuid4())
        assert jwt_manager.verify_access_token(token) is None

    def test_refresh_token_rejected(self, jwt_manager):
        token = jwt.encode({"sub": str(uuid.uuid4()), "type": "refresh", "exp": 9999999999}, SECRET, algorithm="HS256")
        assert jwt_manager.verify_access_token(token) is None

    def test_non_uuid_subject_rejected(self, jwt_manager):
        token = jwt.encode({"sub": "teacher-7", "type": "access", "exp": 9999999999}, SECRET, algorithm="HS256")
        assert jwt_manager.verify_access_token(token) is None

    def test_garbage(self, jwt_manager):
        assert jwt_manager.verify_access_token("not.a.token") is None
