"""Authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import schemas
from ..auth import CredentialService, Identity, get_credentials, get_current_user
from ..deps import get_db
from ..services import accounts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=schemas.UserPublic,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: schemas.RegisterRequest,
    db: Session = Depends(get_db),
    credentials: CredentialService = Depends(get_credentials),
) -> schemas.UserPublic:
    """
    Register a new member account.

    - Username must be unique (3-50 characters)
    - Email must be unique, compared case-insensitively
    - Password must not be empty; it is stored as a bcrypt hash
    """
    user = accounts.register_user(
        db,
        credentials,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        display_name=payload.display_name,
    )
    return schemas.UserPublic.model_validate(user)


@router.post("/login", response_model=schemas.LoginResponse)
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
    credentials: CredentialService = Depends(get_credentials),
) -> schemas.LoginResponse:
    """Login with username and password; returns a bearer token."""
    user = accounts.authenticate(db, credentials, payload.username, payload.password)
    token = credentials.issue_token(user.id, user.username)
    claims = credentials.verify_token(token)

    return schemas.LoginResponse(
        token=token,
        expires_at=claims.expires_at,
        user=schemas.UserPublic.model_validate(user),
    )


@router.get("/me", response_model=schemas.UserPublic)
def get_me(current_user: Identity = Depends(get_current_user)) -> schemas.UserPublic:
    """Get the current user's account."""
    return schemas.UserPublic.model_validate(current_user)
