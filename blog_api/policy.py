"""Ownership rules for post and comment mutations.

All predicates are pure; callers check existence first and then call
`ensure()` so that a missing resource is reported before a denied one.
"""

from __future__ import annotations

import logging

from .auth import Identity
from .errors import ForbiddenError
from .models import Comment, Post, Role

logger = logging.getLogger(__name__)


def can_edit_post(identity: Identity, post: Post) -> bool:
    return identity.id == post.author_id


def can_delete_post(identity: Identity, post: Post) -> bool:
    return identity.id == post.author_id or identity.role is Role.ADMIN


def can_delete_comment(identity: Identity, comment: Comment) -> bool:
    # Comment authors only: neither admins nor the post author may remove it.
    return identity.id == comment.author_id


def ensure(allowed: bool, message: str) -> None:
    if not allowed:
        logger.warning(f"Denied: {message}")
        raise ForbiddenError(message)
