from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, Header, Request
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import models
from .deps import get_db
from .errors import (
    AuthenticationError,
    IdentityNotFoundError,
    InvalidTokenError,
    NoTokenError,
    WeakInputError,
)
from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    subject_id: uuid.UUID
    username: str | None
    expires_at: datetime


class CredentialService:
    """Password hashing and bearer token issuance for one signing secret."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        token_ttl: timedelta = timedelta(days=7),
        hash_rounds: int = 12,
    ) -> None:
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.token_ttl = token_ttl
        self._pwd_context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=hash_rounds
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialService":
        return cls(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            token_ttl=timedelta(days=settings.jwt_access_token_expire_days),
            hash_rounds=settings.password_hash_rounds,
        )

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt."""
        if not password:
            raise WeakInputError()
        return self._pwd_context.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against its hash. Never raises on mismatch."""
        if not password or not password_hash:
            return False
        try:
            return self._pwd_context.verify(password, password_hash)
        except (ValueError, TypeError):
            logger.warning("Stored password hash could not be parsed")
            return False

    def issue_token(
        self,
        subject_id: uuid.UUID,
        subject_username: str,
        ttl: timedelta | None = None,
    ) -> str:
        """Create a signed access token for a user."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(subject_id),
            "username": subject_username,
            "iat": now,
            "exp": now + (ttl if ttl is not None else self.token_ttl),
            "type": "access",
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token expired")
        except jwt.InvalidTokenError:
            raise InvalidTokenError()

        subject = payload.get("sub")
        if not subject:
            raise InvalidTokenError("Invalid token: missing subject")
        try:
            subject_id = uuid.UUID(str(subject))
        except ValueError:
            raise InvalidTokenError("Invalid user ID in token")

        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        return TokenClaims(subject_id=subject_id, username=payload.get("username"), expires_at=expires_at)


@dataclass(frozen=True)
class Identity:
    """Read-only snapshot of the authenticated caller. Never holds the password hash."""

    id: uuid.UUID
    username: str
    email: str
    role: models.Role
    display_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: models.User) -> "Identity":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=models.Role(user.role),
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            bio=user.bio,
            created_at=user.created_at,
        )

    @property
    def is_admin(self) -> bool:
        return self.role is models.Role.ADMIN


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise NoTokenError()
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise NoTokenError()
    return token.strip()


class IdentityResolver:
    """Turns a raw Authorization header into the caller's Identity."""

    def __init__(self, credentials: CredentialService) -> None:
        self.credentials = credentials

    def resolve(self, authorization: str | None, db: Session) -> Identity:
        token = extract_bearer_token(authorization)
        claims = self.credentials.verify_token(token)

        user = db.get(models.User, claims.subject_id)
        if user is None:
            logger.info(f"Token subject {claims.subject_id} no longer exists")
            raise IdentityNotFoundError()
        return Identity.from_user(user)


def get_credentials(request: Request) -> CredentialService:
    return request.app.state.credentials


def get_resolver(request: Request) -> IdentityResolver:
    return request.app.state.resolver


def get_current_user(
    authorization: str | None = Header(default=None),
    resolver: IdentityResolver = Depends(get_resolver),
    db: Session = Depends(get_db),
) -> Identity:
    """Get current authenticated user from the Bearer token."""
    return resolver.resolve(authorization, db)


def get_current_user_optional(
    authorization: str | None = Header(default=None),
    resolver: IdentityResolver = Depends(get_resolver),
    db: Session = Depends(get_db),
) -> Identity | None:
    """
    Get current user if authenticated, None otherwise.

    Used for endpoints that work differently for authenticated vs anonymous users.
    """
    if authorization is None:
        return None
    try:
        return resolver.resolve(authorization, db)
    except AuthenticationError:
        return None
