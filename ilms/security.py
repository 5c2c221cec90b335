# -*- coding: utf-8 -*-
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, jsonify
from flask_login import current_user

from .cache import get_session_token, set_session_token
from .extensions import db, login_manager
from .models.user import User

ALGORITHM = "HS256"


def issue_token(user: User) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "id": user.id,
        "role": user.role,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(hours=current_app.config["JWT_TTL_HOURS"]),
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm=ALGORITHM)


def _deny(message: str, code: int) -> None:
    g.auth_error = (message, code)


@login_manager.request_loader
def load_user_from_bearer(req):
    """
    Bearer JWT -> User. The token must also be the user's active token
    (last login wins): Redis first, then the users table.
    """
    header = req.headers.get("Authorization", "")
    parts = header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        _deny("No token provided", 403)
        return None
    token = parts[1].strip()

    try:
        payload = jwt.decode(token, current_app.config["JWT_SECRET"], algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        _deny("Unauthorized: Token expired", 401)
        return None
    except jwt.InvalidTokenError:
        _deny("Unauthorized: Invalid Token", 401)
        return None

    try:
        uid = int(payload.get("id"))
    except (TypeError, ValueError):
        _deny("Unauthorized: Invalid Token", 401)
        return None

    user = db.session.get(User, uid)
    if user is None or not user.is_active or user.is_archived:
        _deny("Unauthorized: This account has been deactivated.", 401)
        return None

    active = get_session_token(uid)
    if active is None and user.active_token:
        active = user.active_token
        ttl = int(payload["exp"] - datetime.now(timezone.utc).timestamp())
        if ttl > 0:
            set_session_token(uid, active, ttl)

    if token != active:
        _deny("Session expired. Logged in on another device.", 401)
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    message, code = getattr(g, "auth_error", ("Unauthorized", 401))
    return jsonify({"error": message}), code


def roles_required(*roles):
    """
    Not authenticated -> 401/403 from the bearer check.
    Role not in the list -> 403. Admin passes every check.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()
            role = getattr(current_user, "role", "")
            if role != "Admin" and role not in roles:
                return jsonify({"error": "Insufficient permissions"}), 403
            return f(*args, **kwargs)
        return wrapper
    return decorator
