from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from .auth import CredentialService
from .models import Role, User
from .services.accounts import normalize_email
from .settings import Settings

logger = logging.getLogger(__name__)


def ensure_seed_data(db: Session, settings: Settings, credentials: CredentialService) -> None:
    """
    Create the admin account described by ADMIN_USERNAME / ADMIN_EMAIL /
    ADMIN_PASSWORD, if all three are set and the username is free.

    An existing account with that username is left as it is.
    """
    if not (settings.admin_username and settings.admin_email and settings.admin_password):
        logger.info("ensure_seed_data: No admin account configured.")
        return

    existing = db.query(User).filter(User.username == settings.admin_username).first()
    if existing:
        logger.info(f"ensure_seed_data: Admin user {existing.username} already exists.")
        return

    admin = User(
        username=settings.admin_username,
        email=normalize_email(settings.admin_email),
        password_hash=credentials.hash_password(settings.admin_password),
        role=Role.ADMIN,
    )
    db.add(admin)
    db.commit()
    logger.info(f"ensure_seed_data: Created admin user {admin.username}.")
