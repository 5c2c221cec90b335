from .user import User  # noqa: F401
from .vehicle import Vehicle  # noqa: F401
from .shipment import Shipment, Drop, ShipmentCrew, StatusLog  # noqa: F401
from .payroll import (  # noqa: F401
    PayrollPeriod,
    PayrollRate,
    ShipmentPayroll,
    PayrollAdjustment,
    PayrollPayment,
)
from .activity import ActivityLog  # noqa: F401
from .kpi import KpiMonthlyReport  # noqa: F401
