# Overview: Pytest coverage for the student API endpoints.

from datetime import timedelta

import pytest
from studyhall.time_utils import today, utcnow


def _create(client, payload):
    response = client.post('/api/students', json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["student"]


class TestCreateAndFetch:

    def test_create_returns_money_and_status(self, client, branch, student_payload):
        student = _create(client, student_payload(branch.id))

        assert student["amount_paid"] == 500.0
        assert student["due_amount"] == 500.0
        assert student["status"] == "active"
        assert student["branch_name"] == "Main Branch"
        assert student["membership_start"] == today().isoformat()

    def test_past_end_reports_expired(self, client, branch, student_payload):
        payload = student_payload(
            branch.id,
            membership_start=(today() - timedelta(days=30)).isoformat(),
            membership_end=(today() - timedelta(days=1)).isoformat(),
        )
        student = _create(client, payload)

        response = client.get(f"/api/students/{student['id']}")
        assert response.status_code == 200
        assert response.get_json()["status"] == "expired"

    def test_assignments_listed_newest_shift_first(self, client, branch, seats, shifts, student_payload):
        morning, evening = shifts
        student = _create(client, student_payload(
            branch.id, seat_id=seats[1].id, shift_ids=[morning.id, evening.id]
        ))
        assignments = client.get(f"/api/students/{student['id']}").get_json()["assignments"]
        assert [a["shift_id"] for a in assignments] == sorted([morning.id, evening.id], reverse=True)
        assert {a["seat_number"] for a in assignments} == {"2"}

    def test_conflict_is_400_with_message_and_error(
        self, client, branch, seats, shifts, student_payload
    ):
        morning, _ = shifts
        _create(client, student_payload(branch.id, seat_id=seats[0].id, shift_ids=[morning.id]))

        response = client.post('/api/students', json=student_payload(
            branch.id, name="Ravi", seat_id=seats[0].id, shift_ids=[morning.id]
        ))
        assert response.status_code == 400
        body = response.get_json()
        assert "already assigned" in body["message"]
        assert body["error"]

        students = client.get('/api/students').get_json()["students"]
        assert [s["name"] for s in students] == ["Asha Verma"]

    def test_validation_is_400(self, client, branch, student_payload):
        response = client.post('/api/students', json={"name": "No dates", "branch_id": branch.id})
        assert response.status_code == 400
        assert "Required fields missing" in response.get_json()["message"]

    def test_compact_date_is_400(self, client, branch, student_payload):
        response = client.post('/api/students', json=student_payload(branch.id, membership_start="20260101"))
        assert response.status_code == 400
        assert "YYYY-MM-DD" in response.get_json()["message"]
        assert client.get('/api/students').get_json()["count"] == 0

    def test_unknown_student_is_404(self, client, db_session):
        response = client.get('/api/students/424242')
        assert response.status_code == 404
        assert response.get_json() == {"message": "Student not found", "error": "Student not found"}


class TestLists:

    @pytest.fixture
    def population(self, client, branch, student_payload):
        """One student per bucket: active, expiring soon, expired, deactivated."""
        def make(name, start, end):
            return _create(client, student_payload(
                branch.id,
                name=name,
                membership_start=start.isoformat(),
                membership_end=end.isoformat(),
            ))

        t = today()
        created = {
            "active": make("Active Long", t, t + timedelta(days=90)),
            "soon": make("Ending Soon", t - timedelta(days=20), t + timedelta(days=5)),
            "expired": make("Lapsed", t - timedelta(days=60), t - timedelta(days=2)),
            "deactivated": make("Gone", t, t + timedelta(days=60)),
        }
        response = client.put(f"/api/students/{created['deactivated']['id']}/deactivate")
        assert response.status_code == 200
        return created

    def _names(self, client, path, **params):
        body = client.get(path, query_string=params).get_json()
        assert body["count"] == len(body["students"])
        return {s["name"] for s in body["students"]}

    def test_all_students(self, client, population):
        assert self._names(client, '/api/students') == {"Active Long", "Ending Soon", "Lapsed", "Gone"}

    def test_active(self, client, population):
        assert self._names(client, '/api/students/active') == {"Active Long", "Ending Soon"}

    def test_expired(self, client, population):
        assert self._names(client, '/api/students/expired') == {"Lapsed"}

    def test_expiring_soon(self, client, population):
        assert self._names(client, '/api/students/expiring-soon') == {"Ending Soon"}

    def test_deactivated(self, client, population):
        assert self._names(client, '/api/students/deactivated') == {"Gone"}

    def test_branch_filter(self, client, population, other_branch):
        assert self._names(client, '/api/students', branch_id=other_branch.id) == set()

    def test_bad_branch_filter_is_400(self, client, population):
        response = client.get('/api/students', query_string={"branch_id": "abc"})
        assert response.status_code == 400

    def test_dashboard_counts(self, client, population):
        stats = client.get('/api/students/stats/dashboard').get_json()
        assert stats["active_count"] == 2
        assert stats["expired_count"] == 1
        assert stats["expiring_soon_count"] == 1
        assert stats["deactivated_count"] == 1
        assert stats["month"] == utcnow().strftime("%Y-%m")


class TestShiftRoster:

    @pytest.fixture
    def roster(self, client, branch, seats, shifts, student_payload):
        morning, evening = shifts
        asha = _create(client, student_payload(
            branch.id, name="Asha", phone="111", seat_id=seats[0].id, shift_ids=[morning.id]
        ))
        ravi = _create(client, student_payload(
            branch.id,
            name="Ravi",
            phone="222",
            seat_id=seats[1].id,
            shift_ids=[morning.id],
            membership_start=(today() - timedelta(days=40)).isoformat(),
            membership_end=(today() - timedelta(days=3)).isoformat(),
        ))
        _create(client, student_payload(branch.id, name="Meera", shift_ids=[evening.id]))
        return morning, asha, ravi

    def test_lists_shift_members_with_seat(self, client, roster):
        morning, _, _ = roster
        students = client.get(f'/api/students/shift/{morning.id}').get_json()["students"]
        assert [(s["name"], s["seat_number"]) for s in students] == [("Asha", "1"), ("Ravi", "2")]

    def test_search_matches_phone(self, client, roster):
        morning, _, _ = roster
        students = client.get(
            f'/api/students/shift/{morning.id}', query_string={"search": "22"}
        ).get_json()["students"]
        assert [s["name"] for s in students] == ["Ravi"]

    def test_search_is_case_insensitive(self, client, roster):
        morning, _, _ = roster
        students = client.get(
            f'/api/students/shift/{morning.id}', query_string={"search": "ASH"}
        ).get_json()["students"]
        assert [s["name"] for s in students] == ["Asha"]

    def test_status_filter_uses_derived_status(self, client, roster):
        morning, _, _ = roster
        students = client.get(
            f'/api/students/shift/{morning.id}', query_string={"status": "expired"}
        ).get_json()["students"]
        assert [(s["name"], s["status"]) for s in students] == [("Ravi", "expired")]

    def test_bad_status_is_400(self, client, roster):
        morning, _, _ = roster
        response = client.get(f'/api/students/shift/{morning.id}', query_string={"status": "paused"})
        assert response.status_code == 400


class TestTransitions:

    @pytest.fixture
    def student(self, client, branch, seats, shifts, student_payload):
        morning, _ = shifts
        return _create(client, student_payload(branch.id, seat_id=seats[0].id, shift_ids=[morning.id]))

    def test_update(self, client, student, branch):
        payload = {
            "name": "Asha V.",
            "email": student["email"],
            "phone": student["phone"],
            "address": student["address"],
            "branch_id": branch.id,
            "membership_start": student["membership_start"],
            "membership_end": student["membership_end"],
            "total_fee": 1500,
        }
        response = client.put(f"/api/students/{student['id']}", json=payload)
        assert response.status_code == 200
        body = response.get_json()["student"]
        assert body["name"] == "Asha V."
        assert body["due_amount"] == 1000.0
        # no seat in the payload: the booking is cleared
        assert body["assignments"] == []

    def test_renew(self, client, student):
        response = client.post(f"/api/students/{student['id']}/renew", json={
            "membership_start": today().isoformat(),
            "membership_end": (today() + timedelta(days=30)).isoformat(),
            "cash": 1000,
        })
        assert response.status_code == 200
        body = response.get_json()
        assert body["message"] == "Membership renewed"
        assert body["student"]["amount_paid"] == 1000.0
        assert body["student"]["due_amount"] == 0.0

    def test_renew_requires_dates(self, client, student):
        response = client.post(f"/api/students/{student['id']}/renew", json={})
        assert response.status_code == 400

    def test_deactivate_then_activate(self, client, student, seats, shifts):
        morning, _ = shifts
        response = client.put(f"/api/students/{student['id']}/deactivate")
        assert response.status_code == 200
        assert response.get_json()["student"]["status"] == "deactivated"

        seat_rows = client.get('/api/seats', query_string={"shift_id": morning.id}).get_json()["seats"]
        assert all(row["is_available"] for row in seat_rows)

        response = client.put(f"/api/students/{student['id']}/activate", json={
            "membership_start": today().isoformat(),
            "membership_end": (today() + timedelta(days=30)).isoformat(),
            "seat_id": seats[0].id,
            "shift_ids": [morning.id],
        })
        assert response.status_code == 200
        body = response.get_json()["student"]
        assert body["status"] == "active"
        assert "[Deactivated on" not in body["remark"]

    def test_history(self, client, student):
        client.put(f"/api/students/{student['id']}/deactivate")
        body = client.get(f"/api/students/{student['id']}/history").get_json()
        assert body["count"] == 2
        assert [h["change_type"] for h in body["history"]] == ["deactivate", "create"]
        assert body["history"][0]["shift_ids"] == []
        assert body["history"][0]["seat_id"] is None

    def test_delete(self, client, student):
        response = client.delete(f"/api/students/{student['id']}")
        assert response.status_code == 200
        assert response.get_json()["student"]["id"] == student["id"]
        assert client.get(f"/api/students/{student['id']}").status_code == 404

    def test_delete_unknown_is_404(self, client, db_session):
        assert client.delete('/api/students/999').status_code == 404
