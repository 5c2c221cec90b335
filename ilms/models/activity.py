
from datetime import datetime
from ..extensions import db


class ActivityLog(db.Model):
    __tablename__ = "user_activity_log"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)  # NULL = system
    action_type = db.Column(db.String(48), nullable=False, index=True)
    details = db.Column(db.Text, default="")
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
