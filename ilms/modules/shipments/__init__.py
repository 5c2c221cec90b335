# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from datetime import date

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from ...activity import log_activity
from ...cache import cached, clear_cache
from ...core.classifier import Category, classify, days_delayed, is_at_risk
from ...core.phases import WAREHOUSE_PHASES, Status, display_status
from ...core.progression import DONE, TransitionRejected, check_transition, timeline as build_timeline
from ...errors import Conflict, NotFound, ValidationError
from ...extensions import db
from ...models.shipment import Drop, Shipment, ShipmentCrew, StatusLog
from ...models.user import User
from ...models.vehicle import Vehicle
from ...schemas import DelayReasonIn, ShipmentCreate, StatusUpdate, load
from ...security import roles_required
from ...tx import transaction
from ...xlsx import list_arg, pick_columns, workbook_response
from . import export

log = logging.getLogger(__name__)

bp = Blueprint("shipments", __name__, url_prefix="/api/shipments")

CREW = ("Driver", "Helper")
STAFF = ("Operations", "Payroll")


def _today() -> date:
    return date.today()


def _is_crew_user() -> bool:
    return getattr(current_user, "role", "") in CREW


def _visible_query():
    q = Shipment.query
    if _is_crew_user():
        q = q.join(ShipmentCrew, ShipmentCrew.shipment_id == Shipment.id).filter(
            ShipmentCrew.user_id == current_user.id
        )
    return q


def _get_visible(shipment_id: int) -> Shipment:
    s = _visible_query().filter(Shipment.id == shipment_id).first()
    if s is None:
        raise NotFound("Shipment not found")
    return s


def _row(s: Shipment, today: date) -> dict:
    d = s.to_dict()
    days, kind = days_delayed(s, today)
    d.update({
        "category": classify(s, today).value,
        "displayStatus": display_status(s.status),
        "daysDelayed": days,
        "delayType": kind,
        "isAtRisk": is_at_risk(s, today),
    })
    return d


def _parse_tab(raw: str | None) -> Category | None:
    if not raw or raw.lower() == "all":
        return None
    for c in Category:
        if c.value.lower() == raw.lower():
            return c
    raise ValidationError(f"Unknown tab {raw!r}", allowed=[c.value for c in Category])


@bp.get("")
@login_required
@cached(vary=lambda: _today().isoformat())
def index():
    tab = _parse_tab(request.args.get("tab"))
    archived = (request.args.get("archived") or "").lower() == "true"
    today = _today()

    rows = (
        _visible_query()
        .filter(Shipment.is_archived == archived)
        .order_by(Shipment.loading_date.desc(), Shipment.id.desc())
        .all()
    )
    out = [_row(s, today) for s in rows]
    if tab is not None:
        out = [r for r in out if r["category"] == tab.value]
    return jsonify(out)


@bp.get("/resources")
@login_required
@roles_required("Operations")
def resources():
    def people(role):
        users = (
            User.query.filter_by(role=role, is_archived=False, is_active=True)
            .order_by(User.first_name, User.last_name)
            .all()
        )
        return [{"userID": u.id, "firstName": u.first_name, "lastName": u.last_name} for u in users]

    vehicles = (
        Vehicle.query.filter_by(status="Working", is_archived=False)
        .order_by(Vehicle.plate_no)
        .all()
    )
    return jsonify({
        "drivers": people("Driver"),
        "helpers": people("Helper"),
        "vehicles": [{"vehicleID": v.id, "plateNo": v.plate_no, "type": v.type} for v in vehicles],
    })


def _crew_user(user_id: int, role: str) -> User:
    u = db.session.get(User, user_id)
    if u is None or u.is_archived or u.role != role:
        raise ValidationError(f"{role} #{user_id} not found")
    return u


@bp.post("")
@login_required
@roles_required("Operations")
def create():
    body = load(ShipmentCreate)

    vehicle = db.session.get(Vehicle, body.vehicle_id)
    if vehicle is None or vehicle.is_archived:
        raise ValidationError(f"Vehicle #{body.vehicle_id} not found")
    driver = _crew_user(body.driver_id, "Driver")
    helper = _crew_user(body.helper_id, "Helper") if body.helper_id is not None else None
    if body.shipment_id is not None and db.session.get(Shipment, body.shipment_id) is not None:
        raise ValidationError("Shipment ID already exists.")

    with transaction():
        s = Shipment(
            dest_name=body.dest_name,
            dest_location=body.dest_location,
            vehicle_id=vehicle.id,
            operations_user_id=current_user.id,
            loading_date=body.loading_date,
            delivery_date=body.delivery_date,
            current_status=Status.PENDING.value,
        )
        if body.shipment_id is not None:
            s.id = body.shipment_id
        s.crew.append(ShipmentCrew(user_id=driver.id, role="Driver"))
        if helper is not None:
            s.crew.append(ShipmentCrew(user_id=helper.id, role="Helper"))
        for i, drop in enumerate(body.drops):
            s.drops.append(Drop(sequence=i, name=drop.name, location=drop.location))
        db.session.add(s)
        db.session.flush()

        db.session.add(StatusLog(shipment_id=s.id, phase_name="Creation", user_id=current_user.id))
        log_activity(
            "CREATE_SHIPMENT",
            f"Created Shipment #{s.id} to {s.dest_name} ({len(body.drops) or 1} drop(s))",
        )

    clear_cache("/api/shipments")
    return jsonify({"message": "Success", "shipmentID": s.id}), 201


@bp.put("/<int:shipment_id>/status")
@login_required
@roles_required("Driver", "Helper", "Operations")
def update_status(shipment_id: int):
    body = load(StatusUpdate)
    _get_visible(shipment_id)

    with transaction():
        s = (
            db.session.query(Shipment)
            .filter(Shipment.id == shipment_id)
            .with_for_update()
            .one()
        )
        drop_id = body.drop_id
        if body.phase in WAREHOUSE_PHASES or not s.drops:
            drop_id = None

        already = (
            db.session.query(StatusLog.id)
            .filter_by(shipment_id=s.id, drop_id=drop_id, phase_name=body.phase.value)
            .first()
        )
        if already is not None:
            log.info("duplicate status %r for shipment %s drop %s ignored", body.phase.value, s.id, drop_id)
            return jsonify({
                "message": "Already recorded",
                "shipmentID": s.id,
                "currentStatus": s.current_status,
                "duplicate": True,
            })

        logs = db.session.query(StatusLog).filter_by(shipment_id=s.id).all()
        try:
            new_status = check_transition(
                body.phase,
                drop_id,
                logs,
                s.drop_ids,
                current_status=s.status,
                loading_date=s.loading_date,
                delivery_date=s.delivery_date,
                today=_today(),
            )
        except TransitionRejected as e:
            raise Conflict(e.reason)

        db.session.add(StatusLog(
            shipment_id=s.id,
            drop_id=drop_id,
            phase_name=body.phase.value,
            user_id=current_user.id,
            remarks=body.remarks,
        ))
        if new_status is Status.COMPLETED:
            db.session.add(StatusLog(shipment_id=s.id, phase_name=Status.COMPLETED.value, user_id=current_user.id))
        s.status = new_status
        where = f" (drop #{drop_id})" if drop_id else ""
        log_activity("UPDATE_STATUS", f"Shipment #{s.id}: {body.phase.value}{where}")

    clear_cache("/api/shipments")
    return jsonify({
        "message": f"Shipment {shipment_id} updated to {new_status.value}",
        "shipmentID": shipment_id,
        "currentStatus": new_status.value,
        "duplicate": False,
    })


@bp.get("/<int:shipment_id>/logs")
@login_required
def logs(shipment_id: int):
    _get_visible(shipment_id)
    rows = (
        db.session.query(StatusLog)
        .filter_by(shipment_id=shipment_id)
        .order_by(StatusLog.timestamp.desc(), StatusLog.id.desc())
        .all()
    )
    return jsonify([r.to_dict() for r in rows])


@bp.get("/<int:shipment_id>/timeline")
@login_required
def timeline(shipment_id: int):
    s = _get_visible(shipment_id)
    logs = db.session.query(StatusLog).filter_by(shipment_id=s.id).all()
    by_key = {}
    for entry in logs:
        by_key.setdefault((entry.phase_name, entry.drop_id), entry)

    drops = {d.id: d for d in s.drops}
    nodes = []
    for n in build_timeline(logs, s.drop_ids):
        entry = by_key.get((n.phase.value, n.drop_id)) if n.state == DONE else None
        drop = drops.get(n.drop_id)
        nodes.append({
            "phase": n.phase.value,
            "track": n.track.value,
            "dropID": n.drop_id,
            "dropName": drop.name if drop else None,
            "state": n.state,
            "timestamp": entry.timestamp.isoformat() if entry else None,
            "actorName": entry.actor.full_name if entry and entry.actor else None,
            "remarks": entry.remarks if entry else None,
        })
    return jsonify({"shipmentID": s.id, "currentStatus": s.current_status, "nodes": nodes})


@bp.put("/<int:shipment_id>/delay-reason")
@login_required
@roles_required("Operations")
def delay_reason(shipment_id: int):
    body = load(DelayReasonIn)
    s = db.session.get(Shipment, shipment_id)
    if s is None:
        raise NotFound("Shipment not found")
    with transaction():
        s.delay_reason = body.reason
        log_activity("UPDATE_DELAY_REASON", f"Shipment #{s.id}: {body.reason}")
    clear_cache("/api/shipments")
    return jsonify({"message": "Delay reason updated", "shipmentID": s.id})


@bp.post("/<int:shipment_id>/cancel")
@login_required
@roles_required("Operations")
def cancel(shipment_id: int):
    s = db.session.get(Shipment, shipment_id)
    if s is None:
        raise NotFound("Shipment not found")
    if s.status.is_terminal:
        raise Conflict(f"Shipment is already {s.current_status}")
    with transaction():
        s.status = Status.CANCELLED
        db.session.add(StatusLog(shipment_id=s.id, phase_name=Status.CANCELLED.value, user_id=current_user.id))
        log_activity("CANCEL_SHIPMENT", f"Cancelled Shipment #{s.id}")
    clear_cache("/api/shipments")
    return jsonify({"message": "Shipment cancelled", "shipmentID": s.id, "currentStatus": s.current_status})


@bp.get("/export")
@login_required
@roles_required(*STAFF)
def export_xlsx():
    try:
        start = date.fromisoformat(request.args.get("startDate") or request.args.get("start") or "")
        end = date.fromisoformat(request.args.get("endDate") or request.args.get("end") or "")
    except ValueError:
        raise ValidationError("startDate and endDate must be YYYY-MM-DD")
    if end < start:
        raise ValidationError("The End Date cannot be before the Start Date.")
    columns = pick_columns(list_arg("columns"), export.COLUMNS)
    if not columns:
        raise ValidationError("No columns selected")

    shipments = export.shipments_in_range(start, end)
    if not shipments:
        raise NotFound("No shipments found in the selected range")
    wb = export.build_workbook(shipments, columns)
    return workbook_response(wb, f"Shipment_Report_{start.isoformat()}.xlsx")
