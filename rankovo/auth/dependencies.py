from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from ..rankings.models import Review

logger = logging.getLogger(__name__)


def require_user(request: Request) -> dict:
    """Raise 401 if no user is logged in."""
    user = request.session.get("user")
    if not user:
        logger.warning("Unauthorized access attempt. Not authenticated.")
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_admin(request: Request) -> dict:
    """Raise 401 if not logged in, 403 if not admin."""
    user = require_user(request)
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def require_author(user: dict, review: Review) -> None:
    """Raise 403 unless ``user`` wrote ``review``."""
    if user.get("id") != review.author_id:
        logger.warning(
            "Unauthorized edit attempt on review %s by %s", review.id, user.get("id"),
        )
        raise HTTPException(status_code=403, detail="Only the author can edit this review")
