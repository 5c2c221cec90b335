# -*- coding: utf-8 -*-
"""
Request bodies. Field names follow the JSON API (camelCase aliases);
attribute names stay snake_case. ``load(Model)`` parses the current
request and lets pydantic's ValidationError reach the 400 handler.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from flask import request
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .core.phases import Status, parse_status
from .models.user import ROLES


class _In(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


def load(model: type[_In], data: dict | None = None):
    if data is None:
        data = request.get_json(silent=True) or {}
    return model.model_validate(data)


# ---------- auth ----------
class LoginIn(_In):
    employee_id: str = Field(alias="employeeID", min_length=1)
    password: str = Field(min_length=1)


# ---------- shipments ----------
class DropIn(_In):
    name: str = Field(min_length=1, max_length=120)
    location: str = ""


class ShipmentCreate(_In):
    shipment_id: Optional[int] = Field(default=None, alias="shipmentID", gt=0)
    dest_name: str = Field(alias="destName", min_length=1, max_length=120)
    dest_location: str = Field(alias="destLocation", min_length=1, max_length=255)
    vehicle_id: int = Field(alias="vehicleID")
    driver_id: int = Field(alias="driverID")
    helper_id: Optional[int] = Field(default=None, alias="helperID")
    loading_date: date = Field(alias="loadingDate")
    delivery_date: date = Field(alias="deliveryDate")
    drops: list[DropIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check(self):
        if self.loading_date > self.delivery_date:
            raise ValueError("loadingDate must not be after deliveryDate")
        if self.helper_id is not None and self.helper_id == self.driver_id:
            raise ValueError("driver and helper must be different people")
        return self


class StatusUpdate(_In):
    phase: Status
    drop_id: Optional[int] = Field(default=None, alias="dropID")
    remarks: Optional[str] = Field(default=None, max_length=255)

    @field_validator("phase", mode="before")
    @classmethod
    def _phase(cls, v):
        if isinstance(v, Status):
            return v
        return parse_status(str(v))


class DelayReasonIn(_In):
    reason: str = Field(alias="delayReason", min_length=1, max_length=255)


# ---------- payroll ----------
class PeriodRef(_In):
    period_id: int = Field(alias="periodID")


class AdjustmentIn(_In):
    user_id: int = Field(alias="userID")
    period_id: int = Field(alias="periodID")
    type: Literal["BONUS", "DEDUCTION"]
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    reason: str = Field(default="", max_length=255)


class PaymentIn(_In):
    user_id: int = Field(alias="userID")
    period_id: int = Field(alias="periodID")
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    notes: str = Field(default="", max_length=255)


class RateFees(_In):
    driver_base_fee: Decimal = Field(alias="driverBaseFee", ge=0)
    helper_base_fee: Decimal = Field(alias="helperBaseFee", ge=0)
    food_allowance: Decimal = Field(default=Decimal("0"), alias="foodAllowance", ge=0)


class RateIn(RateFees):
    route_cluster: str = Field(alias="routeCluster", min_length=1, max_length=120)
    vehicle_type: str = Field(alias="vehicleType", min_length=1, max_length=32)


# ---------- users ----------
Role = Literal[ROLES]


class UserUpdate(_In):
    first_name: str = Field(alias="firstName", min_length=1, max_length=64)
    last_name: str = Field(alias="lastName", min_length=1, max_length=64)
    email: Optional[str] = Field(default=None, max_length=120)
    phone: Optional[str] = Field(default=None, max_length=32)
    role: Role
    dob: Optional[date] = None

    @field_validator("dob", "email", "phone", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        return None if v == "" else v


class UserCreate(UserUpdate):
    employee_id: Optional[str] = Field(default=None, alias="employeeID", max_length=32)
    password: str = Field(min_length=6)

    @field_validator("employee_id", mode="before")
    @classmethod
    def _blank_employee(cls, v):
        return None if v == "" else v


class PasswordReset(_In):
    password: str = Field(alias="newPassword", min_length=6)


# ---------- vehicles ----------
VehicleStatus = Literal["Working", "Maintenance"]


class VehicleIn(_In):
    plate_no: str = Field(alias="plateNo", min_length=1, max_length=16)
    type: str = Field(min_length=1, max_length=32)
    status: VehicleStatus = "Working"


class VehicleStatusIn(_In):
    status: VehicleStatus


# ---------- logs ----------
class LogIn(_In):
    action_type: str = Field(alias="actionType", min_length=1, max_length=64)
    details: str = Field(default="", max_length=1000)
