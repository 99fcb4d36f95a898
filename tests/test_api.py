"""Tests for the HTTP endpoints."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from datetime import date

from shiftboard.database import Base, get_db
from tests.conftest import make_shift
from main import app


# Test database setup
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# A Monday far enough ahead that no request expires during the test run
FUTURE_DAY = date(2030, 6, 10)
FUTURE_WEEK = "2030-W24"


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client():
    """Create test client on fresh tables."""
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)
    Base.metadata.drop_all(bind=engine)


def user(user_id):
    return {"user_id": user_id, "user_name": user_id.upper()}


def put_roster(client, *shifts):
    body = {"status": "published", "shifts": [s.model_dump(mode="json") for s in shifts]}
    response = client.put(f"/api/schedules/{FUTURE_WEEK}", json=body)
    assert response.status_code == 200
    return response.json()


class TestSchedules:
    """Roster endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_put_and_get_schedule(self, client):
        put_roster(client, make_shift("s1", "07:00", "15:00", ["a"], day=FUTURE_DAY))

        response = client.get(f"/api/schedules/{FUTURE_WEEK}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "published"
        assert data["shifts"][0]["assigned_users"][0]["user_id"] == "a"

    def test_missing_schedule_is_404(self, client):
        response = client.get("/api/schedules/2030-W30")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    def test_invalid_slot_is_400(self, client):
        shift = make_shift("night", "07:00", "15:00", day=FUTURE_DAY).model_dump(mode="json")
        shift["time_slot"] = {"start": "22:00", "end": "02:00"}

        response = client.put(f"/api/schedules/{FUTURE_WEEK}", json={"shifts": [shift]})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_TIME_SLOT"

    def test_add_staff_conflict_is_409(self, client):
        put_roster(
            client,
            make_shift("s1", "07:00", "15:00", ["a"], day=FUTURE_DAY),
            make_shift("s2", "14:00", "20:00", day=FUTURE_DAY),
        )

        response = client.post(f"/api/schedules/{FUTURE_WEEK}/shifts/s2/staff", json=user("a"))

        assert response.status_code == 409
        assert response.json()["error"]["details"]["conflicting_shift_id"] == "s1"

    def test_rollover_with_templates(self, client):
        template = {
            "id": "morning",
            "label": "Morning",
            "role": "Phục vụ",
            "time_slot": {"start": "07:00", "end": "15:00"},
            "applicable_days": [1],
            "min_users": 2
        }

        response = client.post("/api/schedules/2030-W23/rollover", json={"templates": [template]})

        assert response.status_code == 200
        data = response.json()
        assert data["week_id"] == FUTURE_WEEK
        assert data["status"] == "draft"
        assert data["shifts"][0]["id"] == "shift_2030-06-10_morning"

    def test_availability_reports_total_hours(self, client):
        body = {
            "user": user("a"),
            "date": FUTURE_DAY.isoformat(),
            "available_slots": [{"start": "08:00", "end": "10:00"}, {"start": "09:00", "end": "12:30"}]
        }

        response = client.put("/api/availability", json=body)

        assert response.status_code == 200
        assert response.json()["total_hours"] == pytest.approx(4.5)
        assert len(client.get(f"/api/availability/{FUTURE_WEEK}").json()) == 1


class TestPassRequests:
    """Pass request endpoints."""

    def test_full_handover(self, client):
        put_roster(client, make_shift("s1", "07:00", "15:00", ["a"], day=FUTURE_DAY))

        created = client.post("/api/pass-requests", json={
            "week_id": FUTURE_WEEK, "shift_id": "s1", "requester": user("a")
        })
        assert created.status_code == 200
        request_id = created.json()["id"]

        accepted = client.post(f"/api/pass-requests/{request_id}/accept", json={"user": user("b")})
        assert accepted.json()["status"] == "pending_approval"

        approved = client.post(f"/api/pass-requests/{request_id}/approve", json={"user": user("manager")})
        assert approved.json()["status"] == "resolved"

        roster = client.get(f"/api/schedules/{FUTURE_WEEK}").json()
        assert [u["user_id"] for u in roster["shifts"][0]["assigned_users"]] == ["b"]

        listed = client.get("/api/pass-requests", params={"user_id": "b"}).json()
        assert [r["id"] for r in listed] == [request_id]

    def test_accepting_closed_request_is_400(self, client):
        put_roster(client, make_shift("s1", "07:00", "15:00", ["a"], day=FUTURE_DAY))
        request_id = client.post("/api/pass-requests", json={
            "week_id": FUTURE_WEEK, "shift_id": "s1", "requester": user("a")
        }).json()["id"]
        client.post(f"/api/pass-requests/{request_id}/cancel", json={"user": user("a")})

        response = client.post(f"/api/pass-requests/{request_id}/accept", json={"user": user("b")})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    def test_own_request_is_403(self, client):
        put_roster(client, make_shift("s1", "07:00", "15:00", ["a"], day=FUTURE_DAY))
        request_id = client.post("/api/pass-requests", json={
            "week_id": FUTURE_WEEK, "shift_id": "s1", "requester": user("a")
        }).json()["id"]

        response = client.post(f"/api/pass-requests/{request_id}/accept", json={"user": user("a")})

        assert response.status_code == 403

    def test_stale_requester_is_409(self, client):
        put_roster(client, make_shift("s1", "07:00", "15:00", ["b"], day=FUTURE_DAY))

        response = client.post("/api/pass-requests", json={
            "week_id": FUTURE_WEEK, "shift_id": "s1", "requester": user("a")
        })

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "STALE_PRECONDITION"

    def test_swap_without_counterpart_is_400(self, client):
        put_roster(client, make_shift("s1", "07:00", "15:00", ["a"], day=FUTURE_DAY))

        response = client.post("/api/pass-requests/direct", json={
            "week_id": FUTURE_WEEK, "shift_id": "s1", "requester": user("a"),
            "target": user("b"), "is_swap": True
        })

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_FIELD"

    def test_unknown_request_is_404(self, client):
        response = client.get("/api/pass-requests/nope")

        assert response.status_code == 404

    def test_manager_list(self, client):
        put_roster(client, make_shift("s1", "07:00", "15:00", ["a"], day=FUTURE_DAY))
        client.post("/api/pass-requests", json={"week_id": FUTURE_WEEK, "shift_id": "s1", "requester": user("a")})

        response = client.get("/api/pass-requests/all")

        assert response.status_code == 200
        assert len(response.json()) == 1


class TestMonthlyTasks:
    """Recurring task endpoints."""

    def test_tasks_and_assignments(self, client):
        put_roster(client, make_shift("s1", "07:00", "15:00", ["a"], day=FUTURE_DAY, role="Pha chế"))
        tasks = [{
            "id": "t1",
            "name": "Descale",
            "applies_to_role": "Tất cả",
            "schedule": {"type": "weekly", "days_of_week": [1]}
        }]
        assert client.put("/api/monthly-tasks", json=tasks).status_code == 200

        response = client.get(f"/api/monthly-tasks/assignments/{FUTURE_DAY.isoformat()}")

        assert response.status_code == 200
        assert response.json()[0]["responsible_user_ids"] == ["a"]

    def test_invalid_schedule_type_is_422(self, client):
        tasks = [{"id": "t1", "name": "x", "applies_to_role": "Any", "schedule": {"type": "yearly"}}]

        assert client.put("/api/monthly-tasks", json=tasks).status_code == 422

    def test_completion_roundtrip(self, client):
        body = {
            "task_id": "t1",
            "task_name": "Descale",
            "user": user("a"),
            "date": FUTURE_DAY.isoformat(),
            "is_completed": True
        }

        saved = client.put("/api/monthly-tasks/completions", json=body)
        assert saved.json()["completion"]["task_id"] == "t1"

        month = client.get("/api/monthly-tasks/completions", params={"year": 2030, "month": 6})
        assert len(month.json()) == 1

        deleted = client.delete(f"/api/monthly-tasks/completions/{FUTURE_DAY.isoformat()}/a/t1")
        assert deleted.json() == {"success": True}

        missing = client.delete(f"/api/monthly-tasks/completions/{FUTURE_DAY.isoformat()}/a/t1")
        assert missing.status_code == 404
