"""Post, like and comment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models, policy, schemas
from ..auth import Identity, get_current_user, get_current_user_optional
from ..deps import get_db
from ..services import posts as post_service

router = APIRouter(prefix="/api/posts", tags=["Posts"])


def _serialize(post: models.Post, viewer: Identity | None) -> schemas.Post:
    data = schemas.Post.model_validate(post)
    if viewer is not None:
        data.is_liked = post.is_liked_by(viewer.id)
    return data


def existing_post(id: str, db: Session = Depends(get_db)) -> models.Post:
    """Resolve the post named in the path.

    Runs as a dependency so a missing post is reported before the request
    body is validated.
    """
    return post_service.get_post(db, id)


def editable_post(
    current_user: Identity = Depends(get_current_user),
    post: models.Post = Depends(existing_post),
) -> models.Post:
    policy.ensure(policy.can_edit_post(current_user, post), "Not authorized to edit this post")
    return post


@router.get("", response_model=list[schemas.Post])
def list_posts(
    db: Session = Depends(get_db),
    viewer: Identity | None = Depends(get_current_user_optional),
) -> list[schemas.Post]:
    """
    List all posts, newest first.

    Each post carries `isLiked` when the request is authenticated.
    """
    return [_serialize(post, viewer) for post in post_service.list_posts(db)]


@router.get("/me/list", response_model=list[schemas.Post])
def list_my_posts(
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
) -> list[schemas.Post]:
    """List the current user's posts, newest first."""
    return [
        _serialize(post, current_user)
        for post in post_service.list_posts_by_author(db, current_user)
    ]


@router.get("/{id}", response_model=schemas.Post)
def get_post(
    id: str,
    db: Session = Depends(get_db),
    viewer: Identity | None = Depends(get_current_user_optional),
) -> schemas.Post:
    return _serialize(post_service.get_post(db, id), viewer)


@router.post("", response_model=schemas.Post, status_code=status.HTTP_201_CREATED)
def create_post(
    payload: schemas.PostCreate,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
) -> schemas.Post:
    post = post_service.create_post(db, current_user, payload.title, payload.content)
    return _serialize(post, current_user)


@router.put("/{id}", response_model=schemas.Post)
def update_post(
    payload: schemas.PostUpdate,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
    post: models.Post = Depends(editable_post),
) -> schemas.Post:
    """
    Update title and/or content (author only).

    Omitted fields are left unchanged; an empty value is rejected.
    """
    post = post_service.update_post(
        db, current_user, post.id, title=payload.title, content=payload.content
    )
    return _serialize(post, current_user)


@router.delete("/{id}", response_model=schemas.MessageResponse)
def delete_post(
    id: str,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
) -> schemas.MessageResponse:
    """Delete a post with its comments and likes (author or admin)."""
    post_service.delete_post(db, current_user, id)
    return schemas.MessageResponse(message="Post deleted successfully")


@router.post("/{id}/like", response_model=schemas.LikeToggleResponse)
def toggle_like(
    id: str,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
) -> schemas.LikeToggleResponse:
    is_liked, like_count = post_service.toggle_like(db, current_user, id)
    return schemas.LikeToggleResponse(
        message="Post liked" if is_liked else "Post unliked",
        is_liked=is_liked,
        like_count=like_count,
    )


@router.post(
    "/{id}/comments",
    response_model=schemas.Comment,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
    post: models.Post = Depends(existing_post),
) -> schemas.Comment:
    comment = post_service.add_comment(db, current_user, post.id, payload.content)
    return schemas.Comment.model_validate(comment)


@router.delete("/{postId}/comments/{commentId}", response_model=schemas.MessageResponse)
def delete_comment(
    postId: str,
    commentId: str,
    db: Session = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
) -> schemas.MessageResponse:
    """Delete a comment (comment author only)."""
    post_service.delete_comment(db, current_user, postId, commentId)
    return schemas.MessageResponse(message="Comment deleted successfully")
