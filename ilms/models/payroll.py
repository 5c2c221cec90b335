
from datetime import datetime
from ..extensions import db


class PayrollPeriod(db.Model):
    __tablename__ = "payroll_periods"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(8), nullable=False, default="OPEN", index=True)  # OPEN|CLOSED

    __table_args__ = (db.UniqueConstraint("start_date", "end_date", name="uq_period_range"),)

    @property
    def is_closed(self) -> bool:
        return self.status == "CLOSED"

    def to_dict(self) -> dict:
        return {
            "periodID": self.id,
            "periodName": self.name,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "status": self.status,
        }


class PayrollRate(db.Model):
    __tablename__ = "payroll_rates"

    id = db.Column(db.Integer, primary_key=True)
    route_cluster = db.Column(db.String(120), nullable=False)
    vehicle_type = db.Column(db.String(32), nullable=False)
    driver_base_fee = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    helper_base_fee = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    food_allowance = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    __table_args__ = (db.UniqueConstraint("route_cluster", "vehicle_type", name="uq_rate_route_vehicle"),)

    def to_dict(self) -> dict:
        return {
            "rateID": self.id,
            "routeCluster": self.route_cluster,
            "vehicleType": self.vehicle_type,
            "driverBaseFee": float(self.driver_base_fee or 0),
            "helperBaseFee": float(self.helper_base_fee or 0),
            "foodAllowance": float(self.food_allowance or 0),
        }


class ShipmentPayroll(db.Model):
    __tablename__ = "shipment_payroll"

    id = db.Column(db.Integer, primary_key=True)
    shipment_id = db.Column(db.Integer, db.ForeignKey("shipments.id"), nullable=False, index=True)
    crew_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    period_id = db.Column(db.Integer, db.ForeignKey("payroll_periods.id"), nullable=False, index=True)
    base_fee = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    allowance = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    __table_args__ = (db.UniqueConstraint("shipment_id", "crew_id", name="uq_payroll_shipment_crew"),)


class PayrollAdjustment(db.Model):
    __tablename__ = "payroll_adjustments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    period_id = db.Column(db.Integer, db.ForeignKey("payroll_periods.id"), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)  # BONUS|DEDUCTION
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    reason = db.Column(db.String(255), default="")
    status = db.Column(db.String(8), nullable=False, default="ACTIVE")  # ACTIVE|VOID
    is_carry_over = db.Column(db.Boolean, nullable=False, default=False)
    source_period_id = db.Column(db.Integer, db.ForeignKey("payroll_periods.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "adjustmentID": self.id,
            "userID": self.user_id,
            "periodID": self.period_id,
            "type": self.type,
            "amount": float(self.amount or 0),
            "reason": self.reason,
            "status": self.status,
            "isCarryOver": bool(self.is_carry_over),
            "sourcePeriodID": self.source_period_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class PayrollPayment(db.Model):
    __tablename__ = "payroll_payments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    period_id = db.Column(db.Integer, db.ForeignKey("payroll_periods.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    notes = db.Column(db.String(255), default="")
    status = db.Column(db.String(16), nullable=False, default="COMPLETED")  # COMPLETED|VOID
    payment_date = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "paymentID": self.id,
            "userID": self.user_id,
            "periodID": self.period_id,
            "amount": float(self.amount or 0),
            "notes": self.notes,
            "status": self.status,
            "paymentDate": self.payment_date.isoformat() if self.payment_date else None,
        }
