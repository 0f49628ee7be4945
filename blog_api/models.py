from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship, validates

from .db import Base
from .errors import ValidationError

MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 10000
MAX_COMMENT_LENGTH = 1000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, enum.Enum):
    """Closed set of account roles."""

    MEMBER = "member"
    ADMIN = "admin"


def _clean_text(value: str | None, field: str, max_length: int) -> str:
    """Trim a required text field and enforce its length bounds."""
    if value is None:
        raise ValidationError(f"{field} is required")
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError(f"{field} is required")
    if len(cleaned) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return cleaned


# ============================================================================
# ACCOUNTS
# ============================================================================


class User(Base):
    """User account with credentials and display profile."""

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)  # Stored lower-cased
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(Role, name="user_role", native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.MEMBER,
    )

    # Profile
    display_name = Column(String(100), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    posts = relationship("Post", back_populates="author")


# ============================================================================
# POST AGGREGATE
# ============================================================================


class Post(Base):
    """A blog post together with its comments and like set.

    The post is the unit of consistency: comments and likes are only mutated
    through the methods below and persisted with a single commit.
    """

    __tablename__ = "posts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    author_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(MAX_TITLE_LENGTH), nullable=False)
    content = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    author = relationship("User", back_populates="posts")
    comments = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
        passive_deletes=True,
    )
    likes = relationship(
        "PostLike",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_posts_author_created", author_id, created_at.desc()),)

    @validates("author_id")
    def _validate_author_id(self, key, value):
        if self.author_id is not None and value != self.author_id:
            raise ValueError("Post author cannot be changed")
        return value

    @classmethod
    def create(cls, author_id: uuid.UUID, title: str | None, content: str | None) -> "Post":
        now = utcnow()
        return cls(
            id=uuid.uuid4(),
            author_id=author_id,
            title=_clean_text(title, "Title", MAX_TITLE_LENGTH),
            content=_clean_text(content, "Content", MAX_CONTENT_LENGTH),
            created_at=now,
            updated_at=now,
            comments=[],
            likes=[],
        )

    def touch(self) -> None:
        now = utcnow()
        # Stored timestamps may come back naive (SQLite)
        created = self.created_at
        if created is not None and created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        self.updated_at = max(now, created) if created is not None else now

    def apply_update(self, title: str | None = None, content: str | None = None) -> None:
        """Apply the provided fields; None means the field was omitted.

        An explicitly empty string is validated like any other value and is
        therefore rejected.
        """
        new_title = _clean_text(title, "Title", MAX_TITLE_LENGTH) if title is not None else None
        new_content = (
            _clean_text(content, "Content", MAX_CONTENT_LENGTH) if content is not None else None
        )
        if new_title is not None:
            self.title = new_title
        if new_content is not None:
            self.content = new_content
        self.touch()

    # Likes

    @property
    def like_count(self) -> int:
        return len(self.likes)

    def is_liked_by(self, user_id: uuid.UUID | None) -> bool:
        if user_id is None:
            return False
        return any(like.user_id == user_id for like in self.likes)

    def toggle_like(self, user_id: uuid.UUID) -> bool:
        """Flip the user's membership in the like set; return the new state."""
        for like in self.likes:
            if like.user_id == user_id:
                self.likes.remove(like)
                self.touch()
                return False
        self.likes.append(PostLike(user_id=user_id, created_at=utcnow()))
        self.touch()
        return True

    # Comments

    @property
    def comment_count(self) -> int:
        return len(self.comments)

    def find_comment(self, comment_id: uuid.UUID) -> "Comment | None":
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        return None

    def add_comment(self, author_id: uuid.UUID, content: str | None) -> "Comment":
        comment = Comment(
            id=uuid.uuid4(),
            author_id=author_id,
            content=_clean_text(content, "Comment content", MAX_COMMENT_LENGTH),
            created_at=utcnow(),
        )
        self.comments.append(comment)
        self.touch()
        return comment

    def remove_comment(self, comment_id: uuid.UUID) -> bool:
        comment = self.find_comment(comment_id)
        if comment is None:
            return False
        self.comments.remove(comment)
        self.touch()
        return True


class Comment(Base):
    """Comment on a post."""

    __tablename__ = "comments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    post_id = Column(
        Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    post = relationship("Post", back_populates="comments")
    author = relationship("User")

    __table_args__ = (Index("ix_comments_post_created", post_id, created_at),)

    @validates("author_id")
    def _validate_author_id(self, key, value):
        if self.author_id is not None and value != self.author_id:
            raise ValueError("Comment author cannot be changed")
        return value


class PostLike(Base):
    """Membership of a user in a post's like set."""

    __tablename__ = "post_likes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    post_id = Column(
        Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    post = relationship("Post", back_populates="likes")

    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_post_likes_post_user"),)
