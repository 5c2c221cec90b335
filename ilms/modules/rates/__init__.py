# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required
from sqlalchemy import func

from ...activity import log_activity
from ...cache import cached, clear_cache
from ...errors import NotFound, ValidationError
from ...extensions import db
from ...models.payroll import PayrollRate
from ...schemas import RateFees, RateIn, load
from ...security import roles_required
from ...tx import transaction
from ..payroll.service import money

bp = Blueprint("rates", __name__, url_prefix="/api/rates")


def _get(rate_id: int) -> PayrollRate:
    r = db.session.get(PayrollRate, rate_id)
    if r is None:
        raise NotFound("Rate not found")
    return r


@bp.get("")
@login_required
@roles_required("Payroll")
@cached()
def index():
    rows = PayrollRate.query.order_by(PayrollRate.route_cluster, PayrollRate.vehicle_type).all()
    return jsonify([r.to_dict() for r in rows])


@bp.post("")
@login_required
@roles_required("Payroll")
def create():
    body = load(RateIn)
    dup = PayrollRate.query.filter(
        func.lower(PayrollRate.route_cluster) == body.route_cluster.lower(),
        func.lower(PayrollRate.vehicle_type) == body.vehicle_type.lower(),
    ).first()
    if dup is not None:
        raise ValidationError("Rate already exists for this Route + Vehicle combination.")
    with transaction():
        r = PayrollRate(
            route_cluster=body.route_cluster,
            vehicle_type=body.vehicle_type,
            driver_base_fee=money(body.driver_base_fee),
            helper_base_fee=money(body.helper_base_fee),
            food_allowance=money(body.food_allowance),
        )
        db.session.add(r)
        db.session.flush()
        log_activity("CREATE_RATE", f"Added rate {r.route_cluster} / {r.vehicle_type} [ID: {r.id}]")
    clear_cache("/api/rates")
    return jsonify({"message": "Rate added successfully", "rateID": r.id}), 201


@bp.put("/<int:rate_id>")
@login_required
@roles_required("Payroll")
def update(rate_id: int):
    body = load(RateFees)
    with transaction():
        r = _get(rate_id)
        r.driver_base_fee = money(body.driver_base_fee)
        r.helper_base_fee = money(body.helper_base_fee)
        r.food_allowance = money(body.food_allowance)
        log_activity("UPDATE_RATE", f"Updated rate {r.route_cluster} / {r.vehicle_type} [ID: {r.id}]")
    clear_cache("/api/rates")
    return jsonify({"message": "Rate updated successfully"})


@bp.delete("/<int:rate_id>")
@login_required
@roles_required("Payroll")
def delete(rate_id: int):
    with transaction():
        r = _get(rate_id)
        log_activity("DELETE_RATE", f"Deleted rate {r.route_cluster} / {r.vehicle_type} [ID: {r.id}]")
        db.session.delete(r)
    clear_cache("/api/rates")
    return jsonify({"message": "Rate deleted successfully"})
