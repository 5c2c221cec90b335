
from datetime import datetime
from ..extensions import db


class Vehicle(db.Model):
    __tablename__ = "vehicles"

    id = db.Column(db.Integer, primary_key=True)
    plate_no = db.Column(db.String(16), unique=True, nullable=False)
    type = db.Column(db.String(32), nullable=False)  # e.g. 4W, 6W, 10W
    status = db.Column(db.String(16), nullable=False, default="Working")  # Working|Maintenance
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    date_created = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.Index("ix_vehicles_status_archived", "status", "is_archived"),)

    def to_dict(self) -> dict:
        return {
            "vehicleID": self.id,
            "plateNo": self.plate_no,
            "type": self.type,
            "status": self.status,
            "isArchived": bool(self.is_archived),
            "dateCreated": self.date_created.isoformat() if self.date_created else None,
        }
