# -*- coding: utf-8 -*-
from __future__ import annotations

import secrets

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from ...activity import log_activity
from ...cache import cached, clear_cache, drop_session_token
from ...core.phases import TERMINAL
from ...errors import Conflict, NotFound, ValidationError
from ...extensions import db
from ...models.shipment import Shipment, ShipmentCrew
from ...models.user import User
from ...schemas import PasswordReset, UserCreate, UserUpdate, load
from ...security import roles_required
from ...tx import transaction

bp = Blueprint("users", __name__, url_prefix="/api/users")


def _get(user_id: int) -> User:
    u = db.session.get(User, user_id)
    if u is None:
        raise NotFound("User not found")
    return u


def _new_employee_id() -> str:
    while True:
        candidate = f"EMP{secrets.randbelow(10**6):06d}"
        if not User.query.filter_by(employee_id=candidate).first():
            return candidate


def _active_shipments(user_id: int) -> list[int]:
    rows = (
        db.session.query(Shipment.id)
        .join(ShipmentCrew, ShipmentCrew.shipment_id == Shipment.id)
        .filter(ShipmentCrew.user_id == user_id)
        .filter(Shipment.current_status.notin_([s.value for s in TERMINAL]))
        .order_by(Shipment.id)
        .all()
    )
    return [r[0] for r in rows]


@bp.get("")
@login_required
@roles_required("Operations", "Payroll")
@cached()
def index():
    archived = (request.args.get("archived") or "").lower() == "true"
    rows = User.query.filter(User.is_archived == archived).order_by(User.date_created.desc(), User.id.desc()).all()
    return jsonify([u.to_dict() for u in rows])


@bp.post("")
@bp.post("/create")
@login_required
@roles_required("Admin")
def create():
    body = load(UserCreate)
    employee_id = body.employee_id or _new_employee_id()
    if User.query.filter_by(employee_id=employee_id).first():
        raise ValidationError(f"Employee ID {employee_id} already exists.")
    with transaction():
        u = User(
            employee_id=employee_id,
            first_name=body.first_name,
            last_name=body.last_name,
            email=body.email,
            phone=body.phone,
            role=body.role,
            dob=body.dob,
        )
        u.set_password(body.password)
        db.session.add(u)
        db.session.flush()
        log_activity("CREATE_USER", f"Created User - {u.full_name} ({u.role}) [ID: {u.id}]")
    clear_cache("/api/users")
    return jsonify({"message": "User created successfully", "userID": u.id, "employeeID": u.employee_id}), 201


@bp.put("/<int:user_id>")
@login_required
@roles_required("Admin")
def update(user_id: int):
    body = load(UserUpdate)
    with transaction():
        u = _get(user_id)
        u.first_name = body.first_name
        u.last_name = body.last_name
        u.email = body.email
        u.phone = body.phone
        u.role = body.role
        u.dob = body.dob
        log_activity("UPDATE_USER", f"Updated User - {u.full_name} [ID: {u.id}]")
    clear_cache("/api/users")
    return jsonify({"message": "User updated successfully"})


@bp.delete("/<int:user_id>")
@login_required
@roles_required("Admin")
def archive(user_id: int):
    u = _get(user_id)
    if u.id == current_user.id:
        raise Conflict("You cannot archive your own account")
    active = _active_shipments(u.id)
    if active:
        with transaction():
            ids = ", ".join(str(i) for i in active)
            log_activity("ARCHIVE_USER_DENIED", f"Archive DENIED - User has active Shipment(s) {ids} [ID: {u.id}]")
        raise Conflict("Dependency Conflict", activeShipments=active)

    with transaction():
        u.is_archived = True
        u.is_active = False
        u.active_token = None
        log_activity("ARCHIVE_USER", f"Archived User - [ID: {u.id}]")
    drop_session_token(u.id)
    clear_cache("/api/users")
    return jsonify({"message": "User archived successfully"})


@bp.put("/<int:user_id>/restore")
@login_required
@roles_required("Admin")
def restore(user_id: int):
    with transaction():
        u = _get(user_id)
        u.is_archived = False
        u.is_active = True
        log_activity("RESTORE_USER", f"Restored User - [ID: {u.id}]")
    clear_cache("/api/users")
    return jsonify({"message": "User restored successfully"})


@bp.put("/<int:user_id>/reset-password")
@login_required
@roles_required("Admin")
def reset_password(user_id: int):
    body = load(PasswordReset)
    with transaction():
        u = _get(user_id)
        u.set_password(body.password)
        # existing sessions end with the old password
        u.active_token = None
        log_activity("RESET_PASSWORD", f"Reset password for User [ID: {u.id}]")
    drop_session_token(u.id)
    return jsonify({"message": "Password reset successfully"})
