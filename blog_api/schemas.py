from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_serializer
from pydantic.alias_generators import to_camel

from .models import Role


class APIModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# HEALTH
# ============================================================================


class HealthResponse(APIModel):
    """Health check response."""

    status: str = "ok"
    message: str = "Blog API is running"
    uptime_s: float | None = None


class MessageResponse(APIModel):
    message: str


# ============================================================================
# USER SCHEMAS
# ============================================================================


class AuthorSummary(APIModel):
    """Public author fields embedded in posts and comments."""

    id: UUID
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    role: Role = Role.MEMBER


class UserPublic(AuthorSummary):
    """Account as returned to its owner (registration, login, /me)."""

    email: str
    bio: str | None = None
    created_at: datetime


class RegisterRequest(APIModel):
    """User registration request."""

    username: str
    email: EmailStr = Field(..., max_length=255)
    password: str
    display_name: str | None = None


class LoginRequest(APIModel):
    """User login request - username and password."""

    username: str
    password: str


class LoginResponse(APIModel):
    token: str
    expires_at: datetime
    user: UserPublic


# ============================================================================
# POST SCHEMAS
# ============================================================================


class Comment(APIModel):
    """Comment on a post."""

    id: UUID
    content: str
    author: AuthorSummary
    created_at: datetime


class Post(APIModel):
    """Post with its comments and likes.

    `is_liked` is only serialized when the viewer is known.
    """

    id: UUID
    title: str
    content: str
    author: AuthorSummary
    likes: list[UUID] = []
    like_count: int = 0
    comments: list[Comment] = []
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime
    is_liked: bool | None = None

    @field_validator("likes", mode="before")
    @classmethod
    def _likes_as_user_ids(cls, value: Any) -> Any:
        if value is None:
            return []
        return [getattr(like, "user_id", like) for like in value]

    @model_serializer(mode="wrap")
    def _omit_unknown_viewer(self, handler):
        data = handler(self)
        if self.is_liked is None:
            data.pop("isLiked", None)
            data.pop("is_liked", None)
        return data


class PostCreate(APIModel):
    """Create post request. Presence and length are checked by the aggregate."""

    title: str | None = None
    content: str | None = None


class PostUpdate(APIModel):
    """Update post request; omitted fields are left unchanged."""

    title: str | None = None
    content: str | None = None


class CommentCreate(APIModel):
    """Create comment request."""

    content: str | None = None


class LikeToggleResponse(APIModel):
    message: str
    is_liked: bool
    like_count: int
