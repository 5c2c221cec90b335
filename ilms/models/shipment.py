# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import datetime

from ..core.phases import Status, parse_status
from ..extensions import db


class Shipment(db.Model):
    __tablename__ = "shipments"

    id = db.Column(db.Integer, primary_key=True)
    dest_name = db.Column(db.String(120), nullable=False, default="")
    dest_location = db.Column(db.String(255), nullable=False, default="")
    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"), nullable=True, index=True)
    operations_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    loading_date = db.Column(db.Date, nullable=True)
    delivery_date = db.Column(db.Date, nullable=True)
    current_status = db.Column(db.String(32), nullable=False, default=Status.PENDING.value, index=True)
    delay_reason = db.Column(db.String(255))
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    vehicle = db.relationship("Vehicle", lazy="joined")
    crew = db.relationship("ShipmentCrew", back_populates="shipment", cascade="all, delete-orphan", lazy="selectin")
    drops = db.relationship(
        "Drop", back_populates="shipment", cascade="all, delete-orphan",
        order_by="Drop.sequence", lazy="selectin",
    )

    __table_args__ = (db.Index("ix_shipments_archive_load", "is_archived", "loading_date"),)

    @property
    def status(self) -> Status:
        return parse_status(self.current_status)

    @status.setter
    def status(self, value: Status) -> None:
        self.current_status = Status(value).value

    @property
    def drop_ids(self) -> list[int]:
        return [d.id for d in self.drops]

    def crew_member(self, role: str):
        for c in self.crew:
            if c.role == role:
                return c.user
        return None

    def to_dict(self) -> dict:
        driver = self.crew_member("Driver")
        helper = self.crew_member("Helper")
        return {
            "shipmentID": self.id,
            "destName": self.dest_name,
            "destLocation": self.dest_location,
            "vehicleID": self.vehicle_id,
            "plateNo": self.vehicle.plate_no if self.vehicle else None,
            "truckType": self.vehicle.type if self.vehicle else None,
            "loadingDate": self.loading_date.isoformat() if self.loading_date else None,
            "deliveryDate": self.delivery_date.isoformat() if self.delivery_date else None,
            "currentStatus": self.current_status,
            "delayReason": self.delay_reason,
            "isArchived": bool(self.is_archived),
            "creationTimestamp": self.created_at.isoformat() if self.created_at else None,
            "driverID": driver.id if driver else None,
            "driverName": driver.full_name if driver else None,
            "helperID": helper.id if helper else None,
            "helperName": helper.full_name if helper else None,
            "drops": [d.to_dict() for d in self.drops],
        }


class Drop(db.Model):
    __tablename__ = "shipment_drops"

    id = db.Column(db.Integer, primary_key=True)
    shipment_id = db.Column(db.Integer, db.ForeignKey("shipments.id"), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(120), nullable=False, default="")
    location = db.Column(db.String(255), nullable=False, default="")

    shipment = db.relationship("Shipment", back_populates="drops")

    __table_args__ = (db.UniqueConstraint("shipment_id", "sequence", name="uq_drop_sequence"),)

    def to_dict(self) -> dict:
        return {"dropID": self.id, "sequence": self.sequence, "name": self.name, "location": self.location}


class ShipmentCrew(db.Model):
    __tablename__ = "shipment_crew"

    id = db.Column(db.Integer, primary_key=True)
    shipment_id = db.Column(db.Integer, db.ForeignKey("shipments.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False)  # Driver|Helper

    shipment = db.relationship("Shipment", back_populates="crew")
    user = db.relationship("User", lazy="joined")

    __table_args__ = (db.UniqueConstraint("shipment_id", "user_id", name="uq_shipment_crew"),)


class StatusLog(db.Model):
    """Append-only phase log. drop_id is NULL for warehouse phases."""

    __tablename__ = "shipment_status_log"

    id = db.Column(db.Integer, primary_key=True)
    shipment_id = db.Column(db.Integer, db.ForeignKey("shipments.id"), nullable=False, index=True)
    drop_id = db.Column(db.Integer, db.ForeignKey("shipment_drops.id"), nullable=True)
    phase_name = db.Column(db.String(32), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    remarks = db.Column(db.String(255))
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    actor = db.relationship("User", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "logID": self.id,
            "shipmentID": self.shipment_id,
            "dropID": self.drop_id,
            "phaseName": self.phase_name,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "actorID": self.user_id,
            "actorName": self.actor.full_name if self.actor else "",
            "actorRole": self.actor.role if self.actor else "",
            "remarks": self.remarks,
        }
