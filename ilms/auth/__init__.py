# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from ..activity import log_activity
from ..cache import drop_session_token, set_session_token
from ..errors import AuthError, Forbidden
from ..extensions import db
from ..models.user import User
from ..schemas import LoginIn, load
from ..security import issue_token

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.post("/login")
def login():
    body = load(LoginIn)
    u = User.query.filter_by(employee_id=body.employee_id).first()
    if not u:
        raise AuthError("Invalid Employee ID or Password")
    if not u.is_active or u.is_archived:
        raise Forbidden("Unauthorized: This account has been deactivated.")
    if not u.check_password(body.password):
        raise AuthError("Invalid Employee ID or Password")

    # last login wins: the new token replaces any earlier session
    token = issue_token(u)
    u.active_token = token
    log_activity("LOGIN", f"User {u.employee_id} logged in", user_id=u.id)
    db.session.commit()
    set_session_token(u.id, token, current_app.config["JWT_TTL_HOURS"] * 3600)

    return jsonify({
        "message": "Login success",
        "token": token,
        "user": {
            "userID": u.id,
            "username": u.employee_id,
            "role": u.role,
            "fullName": u.full_name,
            "dateCreated": u.date_created.date().isoformat() if u.date_created else None,
        },
    })


@auth_bp.post("/logout")
@login_required
def logout():
    uid = current_user.id
    current_user.active_token = None
    log_activity("LOGOUT", f"User {current_user.employee_id} logged out", user_id=uid)
    db.session.commit()
    drop_session_token(uid)
    return jsonify({"message": "Logged out successfully"})
