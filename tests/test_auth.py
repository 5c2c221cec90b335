from ilms.extensions import db
from ilms.models.activity import ActivityLog
from ilms.models.user import User

PASSWORD = "secret123"


def test_health_is_public(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


def test_login_returns_token_and_profile(client, users):
    resp = client.post("/api/login", json={"employeeID": "drv", "password": PASSWORD})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["token"]
    assert body["user"]["role"] == "Driver"
    assert body["user"]["fullName"] == "Dan Cruz"
    assert body["user"]["username"] == "drv"


def test_login_records_activity(app, client, users):
    client.post("/api/login", json={"employeeID": "ops", "password": PASSWORD})
    with app.app_context():
        row = ActivityLog.query.filter_by(action_type="LOGIN").one()
        assert row.user_id == users["Operations"]


def test_wrong_password_is_401(client, users):
    resp = client.post("/api/login", json={"employeeID": "drv", "password": "nope"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Invalid Employee ID or Password"


def test_unknown_employee_is_401(client, users):
    resp = client.post("/api/login", json={"employeeID": "ghost", "password": PASSWORD})
    assert resp.status_code == 401


def test_missing_fields_is_400(client):
    resp = client.post("/api/login", json={"employeeID": "drv"})
    assert resp.status_code == 400
    assert resp.get_json()["details"]


def test_deactivated_account_cannot_login(client, make_user):
    make_user("gone", "Driver", is_active=False)
    resp = client.post("/api/login", json={"employeeID": "gone", "password": PASSWORD})
    assert resp.status_code == 403
    assert "deactivated" in resp.get_json()["error"]


def test_missing_token_is_403(client, users):
    resp = client.get("/api/rates")
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "No token provided"


def test_garbage_token_is_401(client, users):
    resp = client.get("/api/rates", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Unauthorized: Invalid Token"


def test_role_outside_allowed_set_is_403(client, auth):
    resp = client.get("/api/rates", headers=auth("Driver"))
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Insufficient permissions"


def test_admin_passes_role_checks(client, auth):
    assert client.get("/api/rates", headers=auth("Admin")).status_code == 200


def test_second_login_supersedes_first(client, users, login):
    first = login("pay")
    second = login("pay")
    assert client.get("/api/rates", headers=second).status_code == 200

    resp = client.get("/api/rates", headers=first)
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Session expired. Logged in on another device."


def test_session_check_falls_back_to_db_without_redis(client, users, login, redis_stub):
    headers = login("pay")
    redis_stub.store.clear()
    assert client.get("/api/rates", headers=headers).status_code == 200


def test_logout_invalidates_token(app, client, users, login):
    headers = login("ops")
    resp = client.post("/api/logout", headers=headers)
    assert resp.status_code == 200

    assert client.get("/api/vehicles", headers=headers).status_code == 401
    with app.app_context():
        assert db.session.get(User, users["Operations"]).active_token is None
        assert ActivityLog.query.filter_by(action_type="LOGOUT").count() == 1


def test_deactivation_ends_live_session(app, client, users, login):
    headers = login("drv")
    with app.app_context():
        db.session.get(User, users["Driver"]).is_active = False
        db.session.commit()
    resp = client.get("/api/shipments", headers=headers)
    assert resp.status_code == 401
