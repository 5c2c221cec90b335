# -*- coding: utf-8 -*-
from __future__ import annotations

import logging

from flask_login import current_user

from .extensions import db
from .models.activity import ActivityLog

log = logging.getLogger(__name__)


def actor_id() -> int | None:
    if getattr(current_user, "is_authenticated", False):
        return int(current_user.id)
    return None


def log_activity(action_type: str, details: str, user_id: int | None = None) -> ActivityLog:
    """
    Add an audit row to the current session. The caller's commit (or
    rollback) decides whether it is kept, so the row shares the fate of the
    change it describes.
    """
    uid = user_id if user_id is not None else actor_id()
    row = ActivityLog(user_id=uid, action_type=action_type, details=details)
    db.session.add(row)
    log.info("activity %s user=%s: %s", action_type, uid, details)
    return row
