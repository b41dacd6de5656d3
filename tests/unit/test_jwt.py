"""Unit tests for bearer token verification."""

import uuid

import jwt
import pytest

from questforge.auth.jwt import create_access_token, verify_token
from questforge.config import get_settings


class TestVerifyToken:

    def test_round_trip_subject(self):
        user_id = str(uuid.uuid4())
        payload = verify_token(create_access_token(user_id))
        assert payload["sub"] == user_id

    def test_subject_is_canonicalized(self):
        user_id = uuid.uuid4()
        token = create_access_token(user_id.hex.upper())
        assert verify_token(token)["sub"] == str(user_id)

    def test_expired_token_rejected(self):
        token = create_access_token(str(uuid.uuid4()), expires_minutes=-1)
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(token)

    def test_non_uuid_subject_rejected(self):
        with pytest.raises(jwt.InvalidTokenError, match="user id"):
            verify_token(create_access_token("42"))

    def test_wrong_secret_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "exp": 9999999999},
            "some-other-secret",
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(jwt.InvalidTokenError):
            verify_token("not-a-token")
