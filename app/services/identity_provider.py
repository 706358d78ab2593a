# --------------------------------------------------
# Identity providers
#
# Validate a bearer token and resolve it to a Principal.
# - JWTIdentityProvider      : tokens issued by /auth/login (HS256, SECRET_KEY)
# - SupabaseIdentityProvider : tokens issued by a Supabase auth server,
#                              checked with GET /auth/v1/user on every call
# Any rejection surfaces as QuizServiceError(Unauthenticated).
# --------------------------------------------------

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import requests
from jose import jwt, JWTError, ExpiredSignatureError

from app.core.config import (
    SECRET_KEY, ALGORITHM, IDENTITY_PROVIDER, SUPABASE_URL, SUPABASE_ANON_KEY, IDENTITY_TIMEOUT_SECONDS
)
from app.core.errors import ErrorKind, QuizServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    id: str
    email: Optional[str] = None


class IdentityProvider(ABC):
    name = "base"

    @abstractmethod
    def verify(self, token: str) -> Principal:
        """Resolve a bearer token to a Principal or raise Unauthenticated."""


class JWTIdentityProvider(IdentityProvider):
    name = "jwt"

    def __init__(self, secret_key: str = SECRET_KEY, algorithm: str = ALGORITHM):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise QuizServiceError(ErrorKind.unauthenticated, "Token has expired")
        except JWTError as e:
            logger.error(f"JWT error: {type(e).__name__}")
            raise QuizServiceError(ErrorKind.unauthenticated, "Authentication failed")

        subject = payload.get("sub")
        if not subject:
            raise QuizServiceError(ErrorKind.unauthenticated, "Invalid token payload")
        return Principal(id=subject, email=payload.get("email"))


class SupabaseIdentityProvider(IdentityProvider):
    name = "supabase"

    def __init__(self, base_url: str = SUPABASE_URL, api_key: str = SUPABASE_ANON_KEY,
                 timeout: float = IDENTITY_TIMEOUT_SECONDS, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def verify(self, token: str) -> Principal:
        if not self.base_url:
            logger.error("SUPABASE_URL is not configured")
            raise QuizServiceError(ErrorKind.unauthenticated, "Authentication failed")

        headers = {"Authorization": f"Bearer {token}", "apikey": self.api_key}
        try:
            response = self.session.get(f"{self.base_url}/auth/v1/user", headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Identity provider unreachable: {type(e).__name__}")
            raise QuizServiceError(ErrorKind.unauthenticated, "Authentication failed")

        if response.status_code != 200:
            logger.warning(f"Identity provider rejected token with status {response.status_code}")
            raise QuizServiceError(ErrorKind.unauthenticated, "Authentication failed", status_code=response.status_code)

        try:
            user = response.json()
        except ValueError:
            raise QuizServiceError(ErrorKind.unauthenticated, "Authentication failed")

        if not isinstance(user, dict) or not user.get("id"):
            raise QuizServiceError(ErrorKind.unauthenticated, "Authentication failed")
        return Principal(id=str(user["id"]), email=user.get("email"))


def build_identity_provider(name: str = IDENTITY_PROVIDER) -> IdentityProvider:
    if name == "jwt":
        return JWTIdentityProvider()
    if name == "supabase":
        return SupabaseIdentityProvider()
    raise ValueError(f"Unsupported identity provider: {name}")


@lru_cache
def get_identity_provider() -> IdentityProvider:
    return build_identity_provider()
