# -*- coding: utf-8 -*-
from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta

from flask import Blueprint, jsonify, request
from flask_login import login_required

from ...activity import log_activity
from ...errors import ValidationError
from ...extensions import db
from ...models.activity import ActivityLog
from ...models.user import User
from ...schemas import LogIn, load
from ...security import roles_required
from ...tx import transaction

bp = Blueprint("logs", __name__, url_prefix="/api/logs")

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        v = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if v < 1:
        raise ValidationError(f"{name} must be positive")
    return v


def _since(timeframe: str, now: datetime) -> datetime | None:
    if timeframe == "Today":
        return datetime.combine(now.date(), time.min)
    if timeframe == "Week":
        return now - timedelta(days=7)
    if timeframe == "Month":
        return datetime.combine(date(now.year, now.month, 1), time.min)
    if timeframe in ("", "All"):
        return None
    raise ValidationError(f"Unknown timeframe {timeframe!r}", allowed=["All", "Today", "Week", "Month"])


@bp.get("")
@login_required
@roles_required("Admin")
def index():
    page = _int_arg("page", 1)
    limit = min(_int_arg("limit", DEFAULT_LIMIT), MAX_LIMIT)
    action = request.args.get("action") or "All"
    role = request.args.get("role") or "All"
    since = _since(request.args.get("timeframe") or "All", datetime.utcnow())

    q = db.session.query(ActivityLog, User).outerjoin(User, User.id == ActivityLog.user_id)
    if action != "All":
        q = q.filter(ActivityLog.action_type == action)
    if role == "System":
        q = q.filter(ActivityLog.user_id.is_(None))
    elif role != "All":
        q = q.filter(User.role == role)
    if since is not None:
        q = q.filter(ActivityLog.timestamp >= since)

    total = q.count()
    rows = (
        q.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    data = [
        {
            "logID": entry.id,
            "actionType": entry.action_type,
            "details": entry.details,
            "timestamp": entry.timestamp.isoformat() if entry.timestamp else None,
            "firstName": u.first_name if u else None,
            "lastName": u.last_name if u else None,
            "role": u.role if u else "System",
        }
        for entry, u in rows
    ]
    return jsonify({
        "data": data,
        "pagination": {
            "totalItems": total,
            "totalPages": math.ceil(total / limit) if total else 0,
            "currentPage": page,
            "itemsPerPage": limit,
        },
    })


@bp.get("/actions")
@login_required
@roles_required("Admin")
def actions():
    rows = db.session.query(ActivityLog.action_type).distinct().order_by(ActivityLog.action_type).all()
    return jsonify([r[0] for r in rows])


@bp.post("")
@login_required
def create():
    body = load(LogIn)
    with transaction():
        log_activity(body.action_type.upper(), body.details)
    return jsonify({"message": "Log saved successfully"}), 201
