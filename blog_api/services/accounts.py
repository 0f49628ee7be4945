"""Account registration and password login."""

from __future__ import annotations

import logging

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import CredentialService
from ..errors import DuplicateError, InvalidCredentialsError, ValidationError
from ..models import Role, User

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 50
MAX_DISPLAY_NAME_LENGTH = 100


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _validate_registration(username: str, email: str) -> None:
    if not username or not email:
        raise ValidationError("All fields are required")
    if len(username) < MIN_USERNAME_LENGTH or len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(
            f"Username must be between {MIN_USERNAME_LENGTH} and {MAX_USERNAME_LENGTH} characters"
        )


def register_user(
    db: Session,
    credentials: CredentialService,
    username: str,
    email: str,
    password: str,
    display_name: str | None = None,
    role: Role = Role.MEMBER,
) -> User:
    """
    Create a new account.

    Username is trimmed; email is trimmed and lower-cased so uniqueness is
    case-insensitive. Raises DuplicateError when either is already taken.
    """
    username = username.strip()
    email = normalize_email(email)
    _validate_registration(username, email)

    if display_name is not None:
        display_name = display_name.strip()[:MAX_DISPLAY_NAME_LENGTH] or None

    existing = (
        db.query(User)
        .filter(or_(User.username == username, func.lower(User.email) == email))
        .first()
    )
    if existing:
        raise DuplicateError("Username or email already taken")

    user = User(
        username=username,
        email=email,
        password_hash=credentials.hash_password(password),
        role=role,
        display_name=display_name,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration
        db.rollback()
        raise DuplicateError("Username or email already taken")
    db.refresh(user)

    logger.info(f"Registered user {user.username} ({user.id})")
    return user


def authenticate(
    db: Session,
    credentials: CredentialService,
    username: str,
    password: str,
) -> User:
    """Return the user for a username/password pair or raise InvalidCredentialsError."""
    username = username.strip() if username else username
    if not username or not password:
        raise ValidationError("Username and password required")

    user = db.query(User).filter(User.username == username).first()
    if not user or not credentials.verify_password(password, user.password_hash):
        logger.warning(f"Failed login attempt for username {username!r}")
        raise InvalidCredentialsError()

    logger.info(f"User {user.username} logged in")
    return user
