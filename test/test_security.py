"""
Caller authentication and teacher authorization.
"""

import uuid
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import requests
from sqlalchemy.exc import OperationalError

from app.core.errors import ErrorKind, QuizServiceError
from app.core.security import (
    authenticate_caller,
    authorize_teacher,
    create_access_token,
    extract_bearer_token,
)
from app.services.identity_provider import (
    IdentityProvider,
    JWTIdentityProvider,
    Principal,
    SupabaseIdentityProvider,
    build_identity_provider,
)


class TestExtractBearerToken:

    def test_valid_header(self):
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self):
        assert extract_bearer_token("bearer tok") == "tok"

    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_header(self, header):
        with pytest.raises(QuizServiceError) as exc:
            extract_bearer_token(header)
        assert exc.value.kind == ErrorKind.unauthenticated
        assert "authorization" in exc.value.message.lower()

    @pytest.mark.parametrize("header", ["Basic dXNlcjpwYXNz", "Bearer", "Bearer ", "tok", "Bearer a b"])
    def test_malformed_header(self, header):
        with pytest.raises(QuizServiceError) as exc:
            extract_bearer_token(header)
        assert exc.value.kind == ErrorKind.unauthenticated


class TestJWTIdentityProvider:

    def test_valid_token(self):
        token = create_access_token({"sub": "teacher-1", "email": "t@school.edu"})
        principal = JWTIdentityProvider().verify(token)
        assert principal == Principal(id="teacher-1", email="t@school.edu")

    def test_expired_token(self):
        token = create_access_token({"sub": "teacher-1"}, expires_delta=timedelta(minutes=-5))
        with pytest.raises(QuizServiceError) as exc:
            JWTIdentityProvider().verify(token)
        assert exc.value.kind == ErrorKind.unauthenticated
        assert "expired" in exc.value.message

    def test_wrong_signature(self):
        token = create_access_token({"sub": "teacher-1"})
        with pytest.raises(QuizServiceError) as exc:
            JWTIdentityProvider(secret_key="another-secret").verify(token)
        assert exc.value.kind == ErrorKind.unauthenticated

    def test_missing_subject(self):
        token = create_access_token({"email": "t@school.edu"})
        with pytest.raises(QuizServiceError) as exc:
            JWTIdentityProvider().verify(token)
        assert exc.value.kind == ErrorKind.unauthenticated

    def test_garbage_token(self):
        with pytest.raises(QuizServiceError):
            JWTIdentityProvider().verify("not-a-jwt")


class TestSupabaseIdentityProvider:

    def _provider(self, response=None, error=None):
        session = MagicMock()
        if error is not None:
            session.get.side_effect = error
        else:
            session.get.return_value = response
        return SupabaseIdentityProvider(base_url="https://proj.supabase.test/", api_key="anon", session=session), session

    def _response(self, status_code, payload):
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = payload
        return response

    def test_valid_token(self):
        provider, session = self._provider(self._response(200, {"id": "u-1", "email": "u@school.edu"}))

        principal = provider.verify("tok")

        assert principal == Principal(id="u-1", email="u@school.edu")
        url = session.get.call_args.args[0]
        headers = session.get.call_args.kwargs["headers"]
        assert url == "https://proj.supabase.test/auth/v1/user"
        assert headers["Authorization"] == "Bearer tok"
        assert headers["apikey"] == "anon"

    def test_rejected_token(self):
        provider, _ = self._provider(self._response(401, {"msg": "invalid JWT"}))
        with pytest.raises(QuizServiceError) as exc:
            provider.verify("tok")
        assert exc.value.kind == ErrorKind.unauthenticated
        assert exc.value.context["status_code"] == 401

    def test_unreachable_provider_fails_closed(self):
        provider, _ = self._provider(error=requests.exceptions.ConnectionError())
        with pytest.raises(QuizServiceError) as exc:
            provider.verify("tok")
        assert exc.value.kind == ErrorKind.unauthenticated

    def test_body_without_id(self):
        provider, _ = self._provider(self._response(200, {"email": "u@school.edu"}))
        with pytest.raises(QuizServiceError):
            provider.verify("tok")

    def test_unconfigured_url(self):
        provider = SupabaseIdentityProvider(base_url="", api_key="anon", session=MagicMock())
        with pytest.raises(QuizServiceError) as exc:
            provider.verify("tok")
        assert exc.value.kind == ErrorKind.unauthenticated


def test_provider_without_verify_cannot_be_built():
    class NoVerifyProvider(IdentityProvider):
        name = "none"

    with pytest.raises(TypeError):
        NoVerifyProvider()


def test_build_identity_provider():
    assert isinstance(build_identity_provider("jwt"), JWTIdentityProvider)
    assert isinstance(build_identity_provider("supabase"), SupabaseIdentityProvider)
    with pytest.raises(ValueError):
        build_identity_provider("ldap")


def test_authenticate_caller_returns_principal():
    token = create_access_token({"sub": "teacher-9"})
    principal = authenticate_caller(f"Bearer {token}", JWTIdentityProvider())
    assert principal.id == "teacher-9"


class TestAuthorizeTeacher:

    def test_registered_teacher(self, db, teacher):
        assert authorize_teacher(db, Principal(id=teacher.id)).id == teacher.id

    def test_unknown_principal_is_forbidden(self, db, teacher):
        with pytest.raises(QuizServiceError) as exc:
            authorize_teacher(db, Principal(id=str(uuid.uuid4())))
        assert exc.value.kind == ErrorKind.forbidden

    def test_lookup_error_is_forbidden(self):
        broken_db = MagicMock()
        broken_db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))

        with pytest.raises(QuizServiceError) as exc:
            authorize_teacher(broken_db, Principal(id="teacher-1"))

        assert exc.value.kind == ErrorKind.forbidden
        broken_db.rollback.assert_called_once()
