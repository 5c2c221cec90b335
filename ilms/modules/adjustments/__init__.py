# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from ...activity import log_activity
from ...cache import clear_cache
from ...errors import NotFound
from ...extensions import db
from ...models.payroll import PayrollAdjustment
from ...models.user import User
from ...schemas import AdjustmentIn, load
from ...security import roles_required
from ...tx import transaction
from ..payroll.service import money, open_period

bp = Blueprint("adjustments", __name__, url_prefix="/api/adjustments")


def _clear():
    clear_cache("/api/payroll")
    clear_cache("/api/adjustments")


@bp.get("/<int:period_id>/<int:user_id>")
@login_required
@roles_required("Payroll")
def ledger(period_id: int, user_id: int):
    rows = (
        PayrollAdjustment.query
        .filter_by(period_id=period_id, user_id=user_id)
        .order_by(PayrollAdjustment.created_at.desc(), PayrollAdjustment.id.desc())
        .all()
    )
    return jsonify([a.to_dict() for a in rows])


@bp.post("")
@login_required
@roles_required("Payroll")
def add():
    body = load(AdjustmentIn)
    if db.session.get(User, body.user_id) is None:
        raise NotFound(f"User #{body.user_id} not found")
    with transaction():
        open_period(body.period_id)
        a = PayrollAdjustment(
            user_id=body.user_id,
            period_id=body.period_id,
            type=body.type,
            amount=money(body.amount),
            reason=body.reason,
            status="ACTIVE",
        )
        db.session.add(a)
        db.session.flush()
        log_activity(
            "ADD_ADJUSTMENT",
            f"{body.type} of {money(body.amount)} for User #{body.user_id} in Period #{body.period_id}. Reason: {body.reason}",
        )
    _clear()
    return jsonify({"message": "Adjustment added", "id": a.id}), 201


@bp.delete("/<int:adjustment_id>")
@login_required
@roles_required("Payroll")
def void(adjustment_id: int):
    with transaction():
        a = db.session.get(PayrollAdjustment, adjustment_id)
        if a is None:
            raise NotFound("Adjustment not found")
        open_period(a.period_id)
        a.status = "VOID"
        log_activity("VOID_ADJUSTMENT", f"Voided adjustment #{a.id} ({a.type} {money(a.amount)}) for User #{a.user_id}")
    _clear()
    return jsonify({"message": "Deleted successfully", "id": adjustment_id})
