import fnmatch
from datetime import date
from decimal import Decimal

import pytest

from ilms import create_app
from ilms.extensions import db
from ilms.models.payroll import PayrollPeriod, PayrollRate
from ilms.models.shipment import Drop, Shipment, ShipmentCrew
from ilms.models.user import User
from ilms.models.vehicle import Vehicle

PASSWORD = "secret123"


class FakeRedis:
    """In-memory stand-in for the few redis-py calls the app makes."""

    def __init__(self):
        self.store = {}
        self.ttl = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttl[key] = ttl
        return True

    def delete(self, *keys):
        n = 0
        for k in keys:
            if self.store.pop(k, None) is not None:
                n += 1
            self.ttl.pop(k, None)
        return n

    def scan_iter(self, match="*"):
        return [k for k in list(self.store) if fnmatch.fnmatchcase(k, match)]


@pytest.fixture
def redis_stub():
    return FakeRedis()


@pytest.fixture
def app(redis_stub):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "SQLALCHEMY_ENGINE_OPTIONS": {},
            "JWT_SECRET": "test-secret-that-is-long-enough-for-hs256",
            "LOG_LEVEL": "WARNING",
        },
        redis_client=redis_stub,
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(employee_id, role, first="Test", last=None, password=PASSWORD, **kw):
        with app.app_context():
            u = User(employee_id=employee_id, first_name=first, last_name=last or employee_id, role=role, **kw)
            u.set_password(password)
            db.session.add(u)
            db.session.commit()
            return u.id
    return _make


@pytest.fixture
def users(make_user):
    return {
        "Admin": make_user("admin", "Admin", first="Ada"),
        "Operations": make_user("ops", "Operations", first="Olive"),
        "Payroll": make_user("pay", "Payroll", first="Paolo"),
        "Driver": make_user("drv", "Driver", first="Dan", last="Cruz"),
        "Helper": make_user("hlp", "Helper", first="Hector", last="Lim"),
    }


@pytest.fixture
def login(client):
    def _login(employee_id, password=PASSWORD):
        resp = client.post("/api/login", json={"employeeID": employee_id, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return {"Authorization": f"Bearer {resp.get_json()['token']}"}
    return _login


@pytest.fixture
def auth(users, login):
    """role -> Authorization header; each role logs in once per test."""
    ids = {"Admin": "admin", "Operations": "ops", "Payroll": "pay", "Driver": "drv", "Helper": "hlp"}
    cache = {}

    def _auth(role):
        if role not in cache:
            cache[role] = login(ids[role])
        return cache[role]
    return _auth


@pytest.fixture
def make_vehicle(app):
    def _make(plate="ABC1234", vtype="6-Wheeler", status="Working"):
        with app.app_context():
            v = Vehicle(plate_no=plate, type=vtype, status=status)
            db.session.add(v)
            db.session.commit()
            return v.id
    return _make


@pytest.fixture
def make_shipment(app, users, make_vehicle):
    plates = iter(f"TST{i:04d}" for i in range(1, 10000))

    def _make(
        loading=None,
        delivery=None,
        status="Pending",
        drops=0,
        dest_location="Quezon City, Manila",
        vehicle_type="6-Wheeler",
        vehicle_id=None,
        driver=True,
        helper=True,
    ):
        today = date.today()
        vid = vehicle_id or make_vehicle(plate=next(plates), vtype=vehicle_type)
        with app.app_context():
            s = Shipment(
                dest_name="Store",
                dest_location=dest_location,
                vehicle_id=vid,
                loading_date=loading or today,
                delivery_date=delivery or loading or today,
                current_status=status,
            )
            if driver:
                s.crew.append(ShipmentCrew(user_id=users["Driver"], role="Driver"))
            if helper:
                s.crew.append(ShipmentCrew(user_id=users["Helper"], role="Helper"))
            for i in range(drops):
                s.drops.append(Drop(sequence=i, name=f"Drop {i + 1}", location=f"Location {i + 1}"))
            db.session.add(s)
            db.session.commit()
            return s.id
    return _make


@pytest.fixture
def make_period(app):
    def _make(start, end, status="OPEN", name=None):
        with app.app_context():
            p = PayrollPeriod(name=name or f"{start}..{end}", start_date=start, end_date=end, status=status)
            db.session.add(p)
            db.session.commit()
            return p.id
    return _make


@pytest.fixture
def make_rate(app):
    def _make(cluster, vtype, driver, helper, allowance=0):
        with app.app_context():
            r = PayrollRate(
                route_cluster=cluster,
                vehicle_type=vtype,
                driver_base_fee=Decimal(str(driver)),
                helper_base_fee=Decimal(str(helper)),
                food_allowance=Decimal(str(allowance)),
            )
            db.session.add(r)
            db.session.commit()
            return r.id
    return _make
