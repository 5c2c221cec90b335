# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from ...activity import log_activity
from ...cache import clear_cache
from ...errors import NotFound
from ...extensions import db
from ...models.payroll import PayrollPayment
from ...models.user import User
from ...schemas import PaymentIn, load
from ...security import roles_required
from ...tx import transaction
from ..payroll.service import money, open_period

bp = Blueprint("payments", __name__, url_prefix="/api/payments")


def _clear():
    clear_cache("/api/payroll")
    clear_cache("/api/payments")


@bp.get("/<int:period_id>/<int:user_id>")
@login_required
@roles_required("Payroll")
def history(period_id: int, user_id: int):
    rows = (
        PayrollPayment.query
        .filter_by(period_id=period_id, user_id=user_id)
        .order_by(PayrollPayment.payment_date.desc(), PayrollPayment.id.desc())
        .all()
    )
    return jsonify([p.to_dict() for p in rows])


@bp.post("")
@login_required
@roles_required("Payroll")
def add():
    body = load(PaymentIn)
    if db.session.get(User, body.user_id) is None:
        raise NotFound(f"User #{body.user_id} not found")
    with transaction():
        open_period(body.period_id)
        p = PayrollPayment(
            user_id=body.user_id,
            period_id=body.period_id,
            amount=money(body.amount),
            notes=body.notes,
            status="COMPLETED",
        )
        db.session.add(p)
        db.session.flush()
        log_activity(
            "ADD_PAYMENT",
            f"Recorded payment of {money(body.amount)} for User #{body.user_id}. Notes: {body.notes}",
        )
    _clear()
    return jsonify({"message": "Payment recorded", "id": p.id}), 201


@bp.delete("/<int:payment_id>")
@login_required
@roles_required("Payroll")
def void(payment_id: int):
    with transaction():
        p = db.session.get(PayrollPayment, payment_id)
        if p is None:
            raise NotFound("Payment not found")
        open_period(p.period_id)
        p.status = "VOID"
        log_activity("VOID_PAYMENT", f"Voided payment transaction #{p.id}")
    _clear()
    return jsonify({"message": "Payment voided successfully", "id": payment_id})
