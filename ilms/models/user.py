
from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash
from ..extensions import db

ROLES = ("Admin", "Operations", "Payroll", "Driver", "Helper")
CREW_ROLES = ("Driver", "Helper")


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    first_name = db.Column(db.String(64), nullable=False, default="")
    last_name = db.Column(db.String(64), nullable=False, default="")
    email = db.Column(db.String(120))
    phone = db.Column(db.String(32))
    role = db.Column(db.String(16), nullable=False, default="Driver")  # Admin|Operations|Payroll|Driver|Helper
    dob = db.Column(db.Date)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    active_token = db.Column(db.Text)
    date_created = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.Index("ix_users_role_archived", "role", "is_archived"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict:
        return {
            "userID": self.id,
            "employeeID": self.employee_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "dob": self.dob.isoformat() if self.dob else None,
            "isActive": bool(self.is_active),
            "isArchived": bool(self.is_archived),
            "dateCreated": self.date_created.isoformat() if self.date_created else None,
        }
