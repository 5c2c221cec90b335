# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from ...activity import log_activity
from ...cache import cached, clear_cache
from ...core.phases import TERMINAL
from ...errors import Conflict, NotFound, ValidationError
from ...extensions import db
from ...models.shipment import Shipment
from ...models.vehicle import Vehicle
from ...schemas import VehicleIn, VehicleStatusIn, load
from ...security import roles_required
from ...tx import transaction

bp = Blueprint("vehicles", __name__, url_prefix="/api/vehicles")


def _get(vehicle_id: int) -> Vehicle:
    v = db.session.get(Vehicle, vehicle_id)
    if v is None:
        raise NotFound("Vehicle not found")
    return v


def _check_plate(plate_no: str, exclude_id: int | None = None) -> None:
    q = Vehicle.query.filter(Vehicle.plate_no == plate_no)
    if exclude_id is not None:
        q = q.filter(Vehicle.id != exclude_id)
    if q.first() is not None:
        raise ValidationError(f"Plate {plate_no} is already registered.")


def _active_shipments(vehicle_id: int) -> list[int]:
    rows = (
        db.session.query(Shipment.id)
        .filter(Shipment.vehicle_id == vehicle_id)
        .filter(Shipment.current_status.notin_([s.value for s in TERMINAL]))
        .order_by(Shipment.id)
        .all()
    )
    return [r[0] for r in rows]


@bp.get("")
@login_required
@roles_required("Operations")
@cached()
def index():
    rows = Vehicle.query.filter_by(is_archived=False).order_by(Vehicle.date_created.desc(), Vehicle.id.desc()).all()
    return jsonify([v.to_dict() for v in rows])


@bp.post("")
@bp.post("/create")
@login_required
@roles_required("Operations")
def create():
    body = load(VehicleIn)
    plate = body.plate_no.upper()
    _check_plate(plate)
    with transaction():
        v = Vehicle(plate_no=plate, type=body.type, status=body.status)
        db.session.add(v)
        db.session.flush()
        log_activity("CREATE_VEHICLE", f"Added Vehicle {v.plate_no} ({v.type}) [ID: {v.id}]")
    clear_cache("/api/vehicles")
    return jsonify({"message": "Vehicle added successfully", "id": v.id}), 201


@bp.put("/<int:vehicle_id>")
@login_required
@roles_required("Operations")
def update(vehicle_id: int):
    body = load(VehicleIn)
    plate = body.plate_no.upper()
    _check_plate(plate, exclude_id=vehicle_id)
    with transaction():
        v = _get(vehicle_id)
        v.plate_no = plate
        v.type = body.type
        v.status = body.status
        log_activity("UPDATE_VEHICLE", f"Updated Vehicle {v.plate_no} [ID: {v.id}]")
    clear_cache("/api/vehicles")
    clear_cache("/api/shipments")
    return jsonify({"message": "Vehicle updated successfully"})


@bp.put("/<int:vehicle_id>/status")
@login_required
@roles_required("Operations")
def set_status(vehicle_id: int):
    body = load(VehicleStatusIn)
    with transaction():
        v = _get(vehicle_id)
        v.status = body.status
        log_activity("UPDATE_VEHICLE_STATUS", f"Vehicle {v.plate_no} set to {v.status} [ID: {v.id}]")
    clear_cache("/api/vehicles")
    return jsonify({"message": "Status updated successfully"})


@bp.delete("/<int:vehicle_id>")
@login_required
@roles_required("Operations")
def delete(vehicle_id: int):
    v = _get(vehicle_id)
    active = _active_shipments(v.id)
    if active:
        raise Conflict("Vehicle is assigned to active shipments", activeShipments=active)
    with transaction():
        log_activity("DELETE_VEHICLE", f"Deleted Vehicle {v.plate_no} [ID: {v.id}]")
        if db.session.query(Shipment.id).filter_by(vehicle_id=v.id).first() is not None:
            # completed trips keep pointing at it
            v.is_archived = True
        else:
            db.session.delete(v)
    clear_cache("/api/vehicles")
    return jsonify({"message": "Vehicle deleted successfully"})
