# Overview: Pytest coverage for expenses, monthly collections, due payments and profit/loss.

"""
Finance Tests

Collection rows are history snapshots; a membership period (student,
membership_start) is counted once per month, using its latest snapshot.
"""

from datetime import timedelta

import pytest
from studyhall.models import MembershipHistory, Student
from studyhall.time_utils import today, utcnow


def _this_month() -> str:
    # history rows are stamped in UTC
    return utcnow().strftime("%Y-%m")


def _create(client, payload):
    response = client.post('/api/students', json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["student"]


def _collections(client, **params):
    params.setdefault("month", _this_month())
    response = client.get('/api/collections', query_string=params)
    assert response.status_code == 200
    return response.get_json()


class TestExpenses:

    def test_create_list_delete(self, client, branch):
        response = client.post('/api/expenses', json={
            "title": "Electricity",
            "amount": "1250.50",
            "date": "2026-03-15",
            "branch_id": branch.id,
        })
        assert response.status_code == 201
        expense = response.get_json()["expense"]
        assert expense["amount"] == 1250.5

        client.post('/api/expenses', json={"title": "Rent", "amount": 9000, "date": "2026-04-01"})

        march = client.get('/api/expenses', query_string={"month": "2026-03"}).get_json()
        assert [e["title"] for e in march["expenses"]] == ["Electricity"]
        assert march["total"] == 1250.5

        everything = client.get('/api/expenses').get_json()
        assert everything["count"] == 2

        assert client.delete(f"/api/expenses/{expense['id']}").status_code == 200
        assert client.get('/api/expenses').get_json()["count"] == 1

    @pytest.mark.parametrize("amount", [0, -5, "x"])
    def test_amount_must_be_positive(self, client, db_session, amount):
        response = client.post('/api/expenses', json={"title": "Bad", "amount": amount, "date": "2026-03-01"})
        assert response.status_code == 400

    def test_missing_fields(self, client, db_session):
        response = client.post('/api/expenses', json={"title": "No amount"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "title, amount and date are required"

    def test_bad_month(self, client, db_session):
        response = client.get('/api/expenses', query_string={"month": "March"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "month must be in YYYY-MM format"

    def test_delete_unknown_is_404(self, client, db_session):
        assert client.delete('/api/expenses/5').status_code == 404


class TestCollections:

    def test_one_row_per_membership_period(self, client, branch, student_payload):
        student = _create(client, student_payload(branch.id))
        update = {
            "name": student["name"],
            "email": student["email"],
            "phone": student["phone"],
            "address": student["address"],
            "branch_id": branch.id,
            "membership_start": student["membership_start"],
            "membership_end": student["membership_end"],
            "cash": 600,
        }
        assert client.put(f"/api/students/{student['id']}", json=update).status_code == 200

        body = _collections(client)
        assert body["count"] == 1
        row = body["collections"][0]
        assert row["change_type"] == "update"
        assert row["amount_paid"] == 700.0
        assert body["totals"]["amount_paid"] == 700.0
        assert body["totals"]["due_amount"] == 300.0

    def test_renewal_is_a_new_period(self, client, branch, student_payload):
        student = _create(client, student_payload(branch.id))
        renew = {
            "membership_start": (today() + timedelta(days=31)).isoformat(),
            "membership_end": (today() + timedelta(days=61)).isoformat(),
            "cash": 1000,
        }
        assert client.post(f"/api/students/{student['id']}/renew", json=renew).status_code == 200

        body = _collections(client)
        assert body["count"] == 2
        assert body["totals"]["amount_paid"] == 1500.0

    def test_branch_filter(self, client, branch, other_branch, student_payload):
        _create(client, student_payload(branch.id))
        _create(client, student_payload(other_branch.id, name="Ravi"))

        body = _collections(client, branch_id=other_branch.id)
        assert [row["student_name"] for row in body["collections"]] == ["Ravi"]
        assert body["collections"][0]["branch_name"] == "North Wing"

    def test_other_month_is_empty(self, client, branch, student_payload):
        _create(client, student_payload(branch.id))
        assert _collections(client, month="1999-01")["count"] == 0


class TestPayDue:

    @pytest.fixture
    def row(self, client, branch, student_payload):
        student = _create(client, student_payload(branch.id))
        return student, _collections(client)["collections"][0]

    def test_partial_payment_updates_row_and_student(self, client, db_session, row):
        student, entry = row
        response = client.put(
            f"/api/collections/{entry['history_id']}/pay",
            json={"amount": 200, "payment_type": "online"},
        )
        assert response.status_code == 200
        paid = response.get_json()["collection"]
        assert paid["online"] == 300.0
        assert paid["amount_paid"] == 700.0
        assert paid["due_amount"] == 300.0
        assert paid["updated_at"] is not None

        refreshed = db_session.get(Student, student["id"])
        db_session.refresh(refreshed)
        assert float(refreshed.online) == 300.0
        assert float(refreshed.due_amount) == 300.0

    def test_older_row_leaves_student_alone(self, client, db_session, row):
        student, entry = row
        client.put(f"/api/students/{student['id']}/deactivate")

        response = client.put(f"/api/collections/{entry['history_id']}/pay", json={"amount": 100})
        assert response.status_code == 200

        refreshed = db_session.get(Student, student["id"])
        db_session.refresh(refreshed)
        assert float(refreshed.cash) == 400.0
        older = db_session.get(MembershipHistory, entry["history_id"])
        db_session.refresh(older)
        assert float(older.cash) == 500.0

    def test_cannot_overpay(self, client, row):
        _, entry = row
        response = client.put(f"/api/collections/{entry['history_id']}/pay", json={"amount": 501})
        assert response.status_code == 400
        assert "exceeds the due amount" in response.get_json()["message"]

    def test_payment_type_checked(self, client, row):
        _, entry = row
        response = client.put(
            f"/api/collections/{entry['history_id']}/pay",
            json={"amount": 10, "payment_type": "cheque"},
        )
        assert response.status_code == 400

    def test_zero_amount_rejected(self, client, row):
        _, entry = row
        response = client.put(f"/api/collections/{entry['history_id']}/pay", json={"amount": 0})
        assert response.status_code == 400

    def test_unknown_row_is_404(self, client, db_session):
        assert client.put('/api/collections/999/pay', json={"amount": 10}).status_code == 404


class TestProfitLoss:

    def test_month_report(self, client, branch, student_payload):
        _create(client, student_payload(branch.id))
        month = _this_month()
        client.post('/api/expenses', json={"title": "Wifi", "amount": 150, "date": f"{month}-01"})

        report = client.get('/api/reports/profit-loss', query_string={"month": month}).get_json()
        assert report["month"] == month
        assert report["total_collected"] == 500.0
        assert report["total_due"] == 500.0
        assert report["total_expenses"] == 150.0
        assert report["profit_loss"] == 350.0

    def test_loss_month(self, client, db_session):
        client.post('/api/expenses', json={"title": "Repairs", "amount": 800, "date": "2026-02-10"})
        report = client.get('/api/reports/profit-loss', query_string={"month": "2026-02"}).get_json()
        assert report["profit_loss"] == -800.0

    def test_bad_month(self, client, db_session):
        response = client.get('/api/reports/profit-loss', query_string={"month": "2026-13"})
        assert response.status_code == 400
