"""Post and comment commands and queries.

Every command follows the same order: load the aggregate (404), check the
policy (403), then let the aggregate validate and apply the change (400), and
commit once.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from .. import policy
from ..auth import Identity
from ..errors import NotFoundError
from ..models import Comment, Post

logger = logging.getLogger(__name__)


def parse_id(raw: str | uuid.UUID, what: str = "Post") -> uuid.UUID:
    """Parse a path identifier; a malformed id cannot name an existing resource."""
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise NotFoundError(f"{what} not found")


def _post_query(db: Session) -> Query:
    return db.query(Post).options(
        joinedload(Post.author),
        selectinload(Post.likes),
        selectinload(Post.comments).joinedload(Comment.author),
    )


def _load_post(db: Session, post_id: str | uuid.UUID) -> Post:
    post = _post_query(db).filter(Post.id == parse_id(post_id)).first()
    if post is None:
        raise NotFoundError("Post not found")
    return post


# ============================================================================
# QUERIES
# ============================================================================


def list_posts(db: Session) -> list[Post]:
    """All posts, newest first."""
    return _post_query(db).order_by(Post.created_at.desc()).all()


def list_posts_by_author(db: Session, identity: Identity) -> list[Post]:
    return (
        _post_query(db)
        .filter(Post.author_id == identity.id)
        .order_by(Post.created_at.desc())
        .all()
    )


def get_post(db: Session, post_id: str | uuid.UUID) -> Post:
    return _load_post(db, post_id)


# ============================================================================
# COMMANDS
# ============================================================================


def create_post(db: Session, identity: Identity, title: str | None, content: str | None) -> Post:
    post = Post.create(identity.id, title, content)
    db.add(post)
    db.commit()
    logger.info(f"Post {post.id} created by {identity.username}")
    return _load_post(db, post.id)


def update_post(
    db: Session,
    identity: Identity,
    post_id: str | uuid.UUID,
    title: str | None = None,
    content: str | None = None,
) -> Post:
    post = _load_post(db, post_id)
    policy.ensure(policy.can_edit_post(identity, post), "Not authorized to edit this post")

    post.apply_update(title=title, content=content)
    db.commit()
    return _load_post(db, post.id)


def delete_post(db: Session, identity: Identity, post_id: str | uuid.UUID) -> None:
    """Delete a post; its comments and likes go with it in the same transaction."""
    post = _load_post(db, post_id)
    policy.ensure(policy.can_delete_post(identity, post), "Not authorized to delete this post")

    deleted_id, author_id = post.id, post.author_id
    db.delete(post)
    db.commit()
    if author_id != identity.id:
        logger.info(f"Post {deleted_id} deleted by admin {identity.username}")
    else:
        logger.info(f"Post {deleted_id} deleted by {identity.username}")


def toggle_like(db: Session, identity: Identity, post_id: str | uuid.UUID) -> tuple[bool, int]:
    """Flip the caller's like; return (is_liked, like_count) as stored."""
    post = _load_post(db, post_id)
    is_liked = post.toggle_like(identity.id)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent toggle by the same user already inserted the like
        db.rollback()
        logger.info(f"Concurrent like on post {post.id} by {identity.username}, reloading")
        post = _load_post(db, post.id)
        return post.is_liked_by(identity.id), post.like_count

    db.refresh(post)
    return is_liked, post.like_count


def add_comment(
    db: Session, identity: Identity, post_id: str | uuid.UUID, content: str | None
) -> Comment:
    post = _load_post(db, post_id)
    comment = post.add_comment(identity.id, content)
    db.commit()

    comment = (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.id == comment.id)
        .one()
    )
    return comment


def delete_comment(
    db: Session,
    identity: Identity,
    post_id: str | uuid.UUID,
    comment_id: str | uuid.UUID,
) -> None:
    post = _load_post(db, post_id)
    comment = post.find_comment(parse_id(comment_id, "Comment"))
    if comment is None:
        raise NotFoundError("Comment not found")

    policy.ensure(
        policy.can_delete_comment(identity, comment),
        "Not authorized to delete this comment",
    )

    if not post.remove_comment(comment.id):
        raise NotFoundError("Comment not found")
    db.commit()
