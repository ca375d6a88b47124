# Overview: Pytest coverage for branch, schedule and seat endpoints.

from studyhall.models import Seat


class TestBranches:

    def test_create_and_list(self, client, db_session):
        response = client.post('/api/branches', json={"name": "  Lake View ", "phone": "555-0199"})
        assert response.status_code == 201
        assert response.get_json()["branch"]["name"] == "Lake View"

        body = client.get('/api/branches').get_json()
        assert [b["name"] for b in body["branches"]] == ["Lake View"]

    def test_name_is_required(self, client, db_session):
        response = client.post('/api/branches', json={"address": "somewhere"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "name is required"

    def test_duplicate_name_case_insensitive(self, client, branch):
        response = client.post('/api/branches', json={"name": "main branch"})
        assert response.status_code == 400
        assert "already exists" in response.get_json()["message"]

    def test_delete_refused_while_seats_exist(self, client, branch, seats):
        response = client.delete(f'/api/branches/{branch.id}')
        assert response.status_code == 400
        assert response.get_json()["message"] == "Branch still has seats"

    def test_delete_empty_branch(self, client, other_branch):
        assert client.delete(f'/api/branches/{other_branch.id}').status_code == 200
        assert client.get('/api/branches').get_json()["count"] == 0

    def test_delete_unknown_is_404(self, client, db_session):
        assert client.delete('/api/branches/77').status_code == 404


class TestSchedules:

    def test_create_update_list(self, client, db_session):
        created = client.post('/api/schedules', json={"title": "Night", "time": "23:00-05:00"})
        assert created.status_code == 201
        shift_id = created.get_json()["schedule"]["id"]

        updated = client.put(f'/api/schedules/{shift_id}', json={"description": "Quiet hours"})
        assert updated.status_code == 200
        body = updated.get_json()["schedule"]
        assert body["title"] == "Night"
        assert body["description"] == "Quiet hours"

        listed = client.get('/api/schedules').get_json()["schedules"]
        assert [s["id"] for s in listed] == [shift_id]

    def test_title_required(self, client, db_session):
        assert client.post('/api/schedules', json={"time": "06:00"}).status_code == 400

    def test_blank_title_update_rejected(self, client, shifts):
        morning, _ = shifts
        response = client.put(f'/api/schedules/{morning.id}', json={"title": "  "})
        assert response.status_code == 400

    def test_update_unknown_is_404(self, client, db_session):
        assert client.put('/api/schedules/404', json={"title": "x"}).status_code == 404

    def test_delete_refused_while_assigned(self, client, branch, seats, shifts, student_payload):
        morning, evening = shifts
        client.post('/api/students', json=student_payload(
            branch.id, seat_id=seats[0].id, shift_ids=[morning.id]
        ))
        assert client.delete(f'/api/schedules/{morning.id}').status_code == 400
        assert client.delete(f'/api/schedules/{evening.id}').status_code == 200


class TestSeats:

    def test_bulk_add_reports_duplicates(self, client, branch, seats):
        response = client.post('/api/seats', json={"branch_id": branch.id, "seat_numbers": "3, 4, 4, 5,"})
        assert response.status_code == 201
        body = response.get_json()
        assert [s["seat_number"] for s in body["seats"]] == ["4", "5"]
        assert body["skipped"] == ["3"]
        assert body["message"] == "2 seat(s) added, 1 already existed"

    def test_bulk_add_accepts_list(self, client, branch):
        response = client.post('/api/seats', json={"branch_id": branch.id, "seat_numbers": ["A1", "A2"]})
        assert response.status_code == 201
        assert len(response.get_json()["seats"]) == 2

    def test_bulk_add_needs_numbers(self, client, branch):
        response = client.post('/api/seats', json={"branch_id": branch.id, "seat_numbers": " , "})
        assert response.status_code == 400

    def test_bulk_add_unknown_branch(self, client, db_session):
        response = client.post('/api/seats', json={"branch_id": 999, "seat_numbers": "1"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "Branch with ID 999 does not exist"

    def test_same_number_allowed_in_other_branch(self, client, seats, other_branch, db_session):
        response = client.post('/api/seats', json={"branch_id": other_branch.id, "seat_numbers": "1"})
        assert response.status_code == 201
        assert db_session.query(Seat).filter_by(seat_number="1").count() == 2

    def test_list_shows_occupants_in_numeric_order(self, client, branch, seats, shifts, student_payload):
        morning, _ = shifts
        client.post('/api/seats', json={"branch_id": branch.id, "seat_numbers": "10"})
        client.post('/api/students', json=student_payload(
            branch.id, seat_id=seats[1].id, shift_ids=[morning.id]
        ))

        rows = client.get('/api/seats', query_string={"branch_id": branch.id}).get_json()["seats"]
        assert [r["seat_number"] for r in rows] == ["1", "2", "3", "10"]
        occupied = [r for r in rows if r["assignments"]]
        assert len(occupied) == 1
        assert occupied[0]["assignments"][0]["student_name"] == "Asha Verma"
        assert occupied[0]["assignments"][0]["shift_title"] == "Morning"

    def test_list_sorts_non_decimal_digits_as_text(self, client, branch, seats):
        response = client.post('/api/seats', json={"branch_id": branch.id, "seat_numbers": "10,²,B2"})
        assert response.status_code == 201

        response = client.get('/api/seats', query_string={"branch_id": branch.id})
        assert response.status_code == 200
        rows = response.get_json()["seats"]
        assert [r["seat_number"] for r in rows] == ["1", "2", "3", "10", "B2", "²"]

    def test_available_shifts(self, client, branch, seats, shifts, student_payload):
        morning, evening = shifts
        client.post('/api/students', json=student_payload(
            branch.id, seat_id=seats[0].id, shift_ids=[morning.id]
        ))
        body = client.get(f'/api/seats/{seats[0].id}/available-shifts').get_json()
        assert [s["id"] for s in body["schedules"]] == [evening.id]

    def test_available_shifts_unknown_seat(self, client, db_session):
        assert client.get('/api/seats/31337/available-shifts').status_code == 404

    def test_delete_refused_while_assigned(self, client, branch, seats, shifts, student_payload):
        morning, _ = shifts
        client.post('/api/students', json=student_payload(
            branch.id, seat_id=seats[0].id, shift_ids=[morning.id]
        ))
        assert client.delete(f'/api/seats/{seats[0].id}').status_code == 400
        assert client.delete(f'/api/seats/{seats[2].id}').status_code == 200


class TestSystem:

    def test_health(self, client, db_session):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json()["checks"]["database"]["status"] == "healthy"

    def test_cors_allowed_origin(self, client, db_session):
        response = client.get('/api/health', headers={"Origin": "http://localhost:5173"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    def test_cors_other_origin(self, client, db_session):
        response = client.get('/api/health', headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in response.headers
