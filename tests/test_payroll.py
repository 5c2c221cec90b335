from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from ilms.extensions import db
from ilms.models.payroll import PayrollAdjustment, PayrollPeriod, PayrollRate, ShipmentPayroll
from ilms.modules.payroll import service


@pytest.fixture
def march(make_period):
    return make_period(date(2024, 3, 1), date(2024, 3, 15), name="Mar 1-15, 2024")


def _generate(client, auth, period_id):
    return client.post("/api/payroll/generate", json={"periodID": period_id}, headers=auth("Payroll"))


def _summary(client, auth, period_id):
    resp = client.get(f"/api/payroll/summary/{period_id}", headers=auth("Payroll"))
    assert resp.status_code == 200
    return {r["userID"]: r for r in resp.get_json()}


def test_pay_status():
    d = Decimal
    assert service.pay_status(d("-1"), d("0")) == "DEFICIT"
    assert service.pay_status(d("100"), d("150")) == "BAL_DUE"
    assert service.pay_status(d("100"), d("100")) == "CLEARED"
    assert service.pay_status(d("100"), d("40")) == "PENDING"
    assert service.pay_status(d("0"), d("0")) == "PENDING"


def test_match_rate_prefers_longest_cluster(app, make_rate):
    make_rate("Manila", "6-Wheeler", 800, 500)
    make_rate("Quezon City", "6-Wheeler", 900, 550)
    make_rate("Quezon City", "10-Wheeler", 1500, 900)
    with app.app_context():
        rates = PayrollRate.query.all()
        assert service.match_rate(rates, "Cubao, QUEZON CITY, Manila", "6-wheeler").driver_base_fee == 900
        assert service.match_rate(rates, "Ermita, Manila", "6-Wheeler").driver_base_fee == 800
        assert service.match_rate(rates, "Cebu City", "6-Wheeler") is None


def test_generate_uses_matching_rate_and_fallback(app, client, auth, users, march, make_rate, make_shipment):
    make_rate("Manila", "6-Wheeler", 800, 500, 300)
    make_rate("Quezon City, Manila", "6-Wheeler", 900, 550, 200)
    d = date(2024, 3, 5)
    make_shipment(loading=d, delivery=d, status="Completed")
    make_shipment(loading=d, delivery=d, status="Completed", dest_location="Cebu City")
    make_shipment(loading=d, delivery=d, status="Arrival")
    make_shipment(loading=d, delivery=date(2024, 3, 20), status="Completed")

    resp = _generate(client, auth, march)
    assert resp.status_code == 200
    assert resp.get_json()["rowsCreated"] == 4

    rows = _summary(client, auth, march)
    driver, helper = rows[users["Driver"]], rows[users["Helper"]]
    assert driver["tripCount"] == 2
    assert driver["totalBasePay"] == 900 + 600
    assert driver["totalAllowance"] == 100
    assert helper["totalBasePay"] == 550 + 400
    assert driver["netSalary"] == 1500
    assert driver["payStatus"] == "PENDING"

    with app.app_context():
        total = sum(r.base_fee for r in ShipmentPayroll.query.filter_by(period_id=march))
        assert float(total) == driver["totalBasePay"] + helper["totalBasePay"]


def test_generate_is_idempotent(client, auth, users, march, make_shipment):
    d = date(2024, 3, 2)
    make_shipment(loading=d, delivery=d, status="Completed")
    assert _generate(client, auth, march).get_json()["rowsCreated"] == 2
    assert _generate(client, auth, march).get_json()["rowsCreated"] == 0
    assert _summary(client, auth, march)[users["Driver"]]["tripCount"] == 1


def test_summary_sorted_by_last_name(client, auth, users, march, make_shipment):
    make_shipment(loading=date(2024, 3, 3), delivery=date(2024, 3, 3), status="Completed")
    _generate(client, auth, march)
    resp = client.get(f"/api/payroll/summary/{march}", headers=auth("Payroll"))
    assert [r["lastName"] for r in resp.get_json()] == ["Cruz", "Lim"]


def test_generate_unknown_period_is_404(client, auth, users):
    assert _generate(client, auth, 999).status_code == 404


def test_closed_period_rejects_generation(client, auth, users, make_period):
    pid = make_period(date(2024, 1, 1), date(2024, 1, 15), status="CLOSED")
    assert _generate(client, auth, pid).status_code == 409


def test_overpayment_carries_over_as_deduction(app, client, auth, users, make_period, make_shipment):
    feb = make_period(date(2024, 2, 16), date(2024, 2, 29), name="Feb 16-29, 2024")
    mar = make_period(date(2024, 3, 1), date(2024, 3, 15), name="Mar 1-15, 2024")
    d = date(2024, 2, 20)
    make_shipment(loading=d, delivery=d, status="Completed", dest_location="Cebu City")
    _generate(client, auth, feb)

    resp = client.post(
        "/api/payments",
        json={"userID": users["Driver"], "periodID": feb, "amount": 1000},
        headers=auth("Payroll"),
    )
    assert resp.status_code == 201
    feb_rows = _summary(client, auth, feb)
    assert feb_rows[users["Driver"]]["payStatus"] == "BAL_DUE"
    assert feb_rows[users["Helper"]]["payStatus"] == "PENDING"

    assert client.post("/api/payroll/close", json={"periodID": feb}, headers=auth("Payroll")).status_code == 200

    body = _generate(client, auth, mar).get_json()
    assert body["carryOvers"] == 1
    with app.app_context():
        adj = PayrollAdjustment.query.filter_by(period_id=mar, is_carry_over=True).one()
        assert adj.type == "DEDUCTION"
        assert adj.amount == Decimal("400.00")
        assert adj.reason == f"Balance from Period #{feb}"
        assert adj.source_period_id == feb

    mar_rows = _summary(client, auth, mar)
    assert mar_rows[users["Driver"]]["totalDeductions"] == 400
    assert mar_rows[users["Driver"]]["payStatus"] == "DEFICIT"

    # re-running replaces the carry-over instead of stacking it
    assert _generate(client, auth, mar).get_json()["carryOvers"] == 1
    with app.app_context():
        assert PayrollAdjustment.query.filter_by(period_id=mar, is_carry_over=True).count() == 1


def test_voided_carry_over_is_kept_and_not_reapplied(app, client, auth, users, make_period, make_shipment):
    feb = make_period(date(2024, 2, 16), date(2024, 2, 29), name="Feb 16-29, 2024")
    mar = make_period(date(2024, 3, 1), date(2024, 3, 15), name="Mar 1-15, 2024")
    d = date(2024, 2, 20)
    make_shipment(loading=d, delivery=d, status="Completed", dest_location="Cebu City")
    _generate(client, auth, feb)
    client.post("/api/payments", json={"userID": users["Driver"], "periodID": feb, "amount": 1000}, headers=auth("Payroll"))

    assert _generate(client, auth, mar).get_json()["carryOvers"] == 1
    with app.app_context():
        carry_id = PayrollAdjustment.query.filter_by(period_id=mar, is_carry_over=True).one().id
    assert client.delete(f"/api/adjustments/{carry_id}", headers=auth("Payroll")).status_code == 200

    assert _generate(client, auth, mar).get_json()["carryOvers"] == 0
    with app.app_context():
        rows = PayrollAdjustment.query.filter_by(period_id=mar, is_carry_over=True).all()
        assert [(r.id, r.status) for r in rows] == [(carry_id, "VOID")]
    assert _summary(client, auth, mar)[users["Driver"]]["totalDeductions"] == 0


def test_generate_rolls_back_when_carry_over_fails(app, client, auth, users, march, make_shipment, monkeypatch):
    d = date(2024, 3, 5)
    make_shipment(loading=d, delivery=d, status="Completed")

    def boom(period):
        raise SQLAlchemyError("carry-over failed")

    monkeypatch.setattr(service, "_carry_over", boom)
    assert _generate(client, auth, march).status_code == 500
    with app.app_context():
        assert ShipmentPayroll.query.count() == 0

    monkeypatch.undo()
    assert _generate(client, auth, march).get_json()["rowsCreated"] == 2


def test_close_period(app, client, auth, users, march):
    resp = client.post("/api/payroll/close", json={"periodID": march}, headers=auth("Payroll"))
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "CLOSED"
    with app.app_context():
        assert db.session.get(PayrollPeriod, march).status == "CLOSED"
    assert client.post("/api/payroll/close", json={"periodID": march}, headers=auth("Payroll")).status_code == 409


def test_trips_for_one_crew_member(client, auth, users, march, make_shipment):
    sid = make_shipment(loading=date(2024, 3, 4), delivery=date(2024, 3, 4), status="Completed")
    _generate(client, auth, march)
    rows = client.get(f"/api/payroll/trips/{march}/{users['Helper']}", headers=auth("Payroll")).get_json()
    assert [r["shipmentID"] for r in rows] == [sid]
    assert rows[0]["baseFee"] == 400
    assert rows[0]["date"] == "2024-03-04"


def test_generate_periods_continues_after_latest(client, auth, users, make_period):
    make_period(date(2024, 1, 1), date(2024, 1, 15))
    resp = client.post("/api/payroll/periods/generate", headers=auth("Payroll"))
    assert resp.status_code == 201
    assert resp.get_json()["count"] == 24

    rows = client.get("/api/payroll/periods", headers=auth("Payroll")).get_json()
    assert len(rows) == 25
    assert rows[-1]["startDate"] == "2024-01-01"
    assert rows[-2]["startDate"] == "2024-01-16"
    assert rows[-2]["periodName"] == "Jan 16-31, 2024"


def test_summary_cache_is_cleared_by_generate(client, auth, users, march, make_shipment):
    assert _summary(client, auth, march) == {}
    make_shipment(loading=date(2024, 3, 6), delivery=date(2024, 3, 6), status="Completed")
    _generate(client, auth, march)
    assert users["Driver"] in _summary(client, auth, march)
