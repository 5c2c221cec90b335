from ilms.extensions import db
from ilms.models.activity import ActivityLog
from ilms.models.user import User
from ilms.models.vehicle import Vehicle


# ---------- rates ----------
def test_rate_crud_and_case_insensitive_duplicate(client, auth, users):
    h = auth("Payroll")
    body = {"routeCluster": "Laguna", "vehicleType": "6-Wheeler", "driverBaseFee": 900, "helperBaseFee": 600}
    resp = client.post("/api/rates", json=body, headers=h)
    assert resp.status_code == 201
    rid = resp.get_json()["rateID"]

    dup = client.post("/api/rates", json={**body, "routeCluster": "LAGUNA "}, headers=h)
    assert dup.status_code == 400
    assert dup.get_json()["error"] == "Rate already exists for this Route + Vehicle combination."

    upd = {"driverBaseFee": 950, "helperBaseFee": 650, "foodAllowance": 200}
    assert client.put(f"/api/rates/{rid}", json=upd, headers=h).status_code == 200
    rows = client.get("/api/rates", headers=h).get_json()
    assert rows == [{
        "rateID": rid, "routeCluster": "Laguna", "vehicleType": "6-Wheeler",
        "driverBaseFee": 950.0, "helperBaseFee": 650.0, "foodAllowance": 200.0,
    }]

    assert client.delete(f"/api/rates/{rid}", headers=h).status_code == 200
    assert client.get("/api/rates", headers=h).get_json() == []
    assert client.delete(f"/api/rates/{rid}", headers=h).status_code == 404


def test_negative_fee_is_rejected(client, auth, users):
    body = {"routeCluster": "Cavite", "vehicleType": "4-Wheeler", "driverBaseFee": -1, "helperBaseFee": 0}
    assert client.post("/api/rates", json=body, headers=auth("Payroll")).status_code == 400


# ---------- users ----------
def _new_user(**kw):
    body = {"firstName": "Rosa", "lastName": "Reyes", "role": "Helper", "password": "helper1"}
    body.update(kw)
    return body


def test_create_user_generates_employee_id(app, client, auth, users):
    resp = client.post("/api/users", json=_new_user(), headers=auth("Admin"))
    assert resp.status_code == 201
    emp = resp.get_json()["employeeID"]
    assert emp.startswith("EMP") and len(emp) == 9

    login = client.post("/api/login", json={"employeeID": emp, "password": "helper1"})
    assert login.status_code == 200
    with app.app_context():
        assert ActivityLog.query.filter_by(action_type="CREATE_USER").count() == 1


def test_create_user_rejects_duplicate_and_bad_role(client, auth, users):
    h = auth("Admin")
    assert client.post("/api/users/create", json=_new_user(employeeID="drv"), headers=h).status_code == 400
    assert client.post("/api/users", json=_new_user(role="Boss"), headers=h).status_code == 400
    assert client.post("/api/users", json=_new_user(password="123"), headers=h).status_code == 400
    assert client.post("/api/users", json=_new_user(), headers=auth("Operations")).status_code == 403


def test_update_user(app, client, auth, users):
    body = {"firstName": "Daniel", "lastName": "Cruz", "role": "Driver", "email": "", "dob": "1990-05-01"}
    assert client.put(f"/api/users/{users['Driver']}", json=body, headers=auth("Admin")).status_code == 200
    with app.app_context():
        u = db.session.get(User, users["Driver"])
        assert u.first_name == "Daniel"
        assert u.email is None
        assert u.dob.isoformat() == "1990-05-01"


def test_archive_blocked_by_active_shipment(app, client, auth, users, make_shipment):
    sid = make_shipment()
    resp = client.delete(f"/api/users/{users['Driver']}", headers=auth("Admin"))
    assert resp.status_code == 409
    assert resp.get_json() == {"error": "Dependency Conflict", "activeShipments": [sid]}
    with app.app_context():
        assert ActivityLog.query.filter_by(action_type="ARCHIVE_USER_DENIED").count() == 1
        assert not db.session.get(User, users["Driver"]).is_archived


def test_archive_and_restore(app, client, auth, users, login):
    drv = login("drv")
    h = auth("Admin")
    assert client.delete(f"/api/users/{users['Driver']}", headers=h).status_code == 200

    assert client.get("/api/shipments", headers=drv).status_code == 401
    listed = client.get("/api/users?archived=true", headers=h).get_json()
    assert [u["userID"] for u in listed] == [users["Driver"]]
    assert client.post("/api/login", json={"employeeID": "drv", "password": "secret123"}).status_code == 403

    assert client.put(f"/api/users/{users['Driver']}/restore", headers=h).status_code == 200
    assert client.post("/api/login", json={"employeeID": "drv", "password": "secret123"}).status_code == 200


def test_admin_cannot_archive_self(client, auth, users):
    assert client.delete(f"/api/users/{users['Admin']}", headers=auth("Admin")).status_code == 409


def test_reset_password_ends_sessions(client, auth, users, login):
    old = login("hlp")
    resp = client.put(
        f"/api/users/{users['Helper']}/reset-password", json={"newPassword": "brand-new"}, headers=auth("Admin")
    )
    assert resp.status_code == 200
    assert client.get("/api/shipments", headers=old).status_code == 401
    assert client.post("/api/login", json={"employeeID": "hlp", "password": "brand-new"}).status_code == 200


# ---------- vehicles ----------
def test_vehicle_create_uppercases_and_rejects_duplicate_plate(client, auth, users):
    h = auth("Operations")
    resp = client.post("/api/vehicles", json={"plateNo": "abc 123", "type": "4-Wheeler"}, headers=h)
    assert resp.status_code == 201
    rows = client.get("/api/vehicles", headers=h).get_json()
    assert rows[0]["plateNo"] == "ABC 123"
    assert rows[0]["status"] == "Working"

    dup = client.post("/api/vehicles/create", json={"plateNo": "ABC 123", "type": "6-Wheeler"}, headers=h)
    assert dup.status_code == 400


def test_vehicle_status(client, auth, make_vehicle):
    vid = make_vehicle("STS0001")
    h = auth("Operations")
    assert client.put(f"/api/vehicles/{vid}/status", json={"status": "Maintenance"}, headers=h).status_code == 200
    assert client.put(f"/api/vehicles/{vid}/status", json={"status": "Broken"}, headers=h).status_code == 400
    assert client.get("/api/vehicles", headers=h).get_json()[0]["status"] == "Maintenance"


def test_vehicle_delete_rules(app, client, auth, make_vehicle, make_shipment):
    h = auth("Operations")
    busy = make_vehicle("BSY0001")
    sid = make_shipment(vehicle_id=busy)
    resp = client.delete(f"/api/vehicles/{busy}", headers=h)
    assert resp.status_code == 409
    assert resp.get_json()["activeShipments"] == [sid]

    used = make_vehicle("USD0001")
    make_shipment(vehicle_id=used, status="Completed")
    assert client.delete(f"/api/vehicles/{used}", headers=h).status_code == 200

    idle = make_vehicle("IDL0001")
    assert client.delete(f"/api/vehicles/{idle}", headers=h).status_code == 200

    with app.app_context():
        assert db.session.get(Vehicle, used).is_archived
        assert db.session.get(Vehicle, idle) is None
    plates = [v["plateNo"] for v in client.get("/api/vehicles", headers=h).get_json()]
    assert plates == ["BSY0001"]


# ---------- activity log ----------
def test_client_log_is_saved_upper_case(app, client, auth):
    resp = client.post("/api/logs", json={"actionType": "export_report", "details": "Payroll"}, headers=auth("Driver"))
    assert resp.status_code == 201
    with app.app_context():
        assert ActivityLog.query.filter_by(action_type="EXPORT_REPORT").count() == 1


def test_logs_pagination_and_filters(app, client, auth):
    h = auth("Admin")
    drv = auth("Driver")
    for i in range(12):
        client.post("/api/logs", json={"actionType": "PING", "details": str(i)}, headers=drv)
    with app.app_context():
        db.session.add(ActivityLog(user_id=None, action_type="CRON", details="nightly"))
        db.session.commit()

    body = client.get("/api/logs?action=PING&limit=5&page=3", headers=h).get_json()
    assert body["pagination"] == {"totalItems": 12, "totalPages": 3, "currentPage": 3, "itemsPerPage": 5}
    assert len(body["data"]) == 2
    assert body["data"][0]["firstName"] == "Dan"

    system = client.get("/api/logs?role=System", headers=h).get_json()
    assert [r["actionType"] for r in system["data"]] == ["CRON"]
    assert system["data"][0]["role"] == "System"

    drivers = client.get("/api/logs?role=Driver&timeframe=Today&limit=100", headers=h).get_json()
    assert {r["actionType"] for r in drivers["data"]} == {"LOGIN", "PING"}

    assert client.get("/api/logs?page=0", headers=h).status_code == 400
    assert client.get("/api/logs?timeframe=Decade", headers=h).status_code == 400
    assert client.get("/api/logs", headers=drv).status_code == 403


def test_log_actions_are_distinct_and_sorted(client, auth):
    h = auth("Admin")
    client.post("/api/logs", json={"actionType": "ZETA"}, headers=h)
    client.post("/api/logs", json={"actionType": "ALPHA"}, headers=h)
    client.post("/api/logs", json={"actionType": "ALPHA"}, headers=h)
    assert client.get("/api/logs/actions", headers=h).get_json() == ["ALPHA", "LOGIN", "ZETA"]
