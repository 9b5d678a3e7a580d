from datetime import date, datetime, timedelta

import pytest

from personalhub.models.event import Event
from personalhub.models.note import Note
from personalhub.models.todo import Todo, TodoPriority, TodoStatus
from personalhub.services import analytics

NOW = datetime(2024, 5, 15, 12, 0)
TODAY = NOW.date()


def _todo(status=TodoStatus.TODO, due=None, created=NOW, updated=NOW, priority=TodoPriority.MEDIUM):
    return Todo(title="t", status=status, priority=priority, due_date=due, created_at=created, updated_at=updated)


def _event(start, hours=1):
    return Event(title="e", start_date_time=start, end_date_time=start + timedelta(hours=hours))


def _note(created, tags=None):
    return Note(title="n", tags=tags, created_at=created, updated_at=created)


class TestTodoStats:
    def test_empty(self):
        stats = analytics.todo_stats([], TODAY)
        assert stats["total_todos"] == 0
        assert stats["completion_rate"] == 0.0

    def test_counts_and_rate(self):
        todos = [
            _todo(TodoStatus.DONE),
            _todo(TodoStatus.IN_PROGRESS),
            _todo(TodoStatus.TODO),
            _todo(TodoStatus.DONE),
            _todo(TodoStatus.TODO),
            _todo(TodoStatus.TODO),
        ]
        stats = analytics.todo_stats(todos, TODAY)
        assert stats["completed_todos"] == 2
        assert stats["in_progress_todos"] == 1
        assert stats["pending_todos"] == 3
        assert stats["completion_rate"] == pytest.approx(33.33)

    def test_overdue_skips_done_and_today(self):
        yesterday = TODAY - timedelta(days=1)
        todos = [
            _todo(due=yesterday),
            _todo(TodoStatus.DONE, due=yesterday),
            _todo(due=TODAY),
            _todo(),
        ]
        assert analytics.todo_stats(todos, TODAY)["overdue_count"] == 1


def test_event_stats():
    events = [
        _event(NOW - timedelta(days=2)),                 # past
        _event(NOW - timedelta(hours=3)),                # past, today
        _event(NOW + timedelta(hours=2)),                # upcoming, today
        _event(NOW + timedelta(days=3)),                 # upcoming
        _event(datetime(2024, 5, 14, 23), hours=2),      # past, spans midnight into today
    ]
    stats = analytics.event_stats(events, NOW)
    assert stats == {
        "total_events": 5,
        "upcoming_events": 2,
        "past_events": 3,
        "today_events": 3,
    }


def test_note_stats_counts_distinct_tags():
    notes = [
        _note(NOW - timedelta(days=1), "work,ideas"),
        _note(NOW - timedelta(days=10), "work"),
        _note(NOW - timedelta(days=40), "archive"),
    ]
    stats = analytics.note_stats(notes, NOW)
    assert stats == {"total_notes": 3, "notes_this_week": 1, "notes_this_month": 2, "total_tags": 3}


def test_productivity_score_weights():
    todos = [_todo(TodoStatus.DONE, updated=NOW), _todo(TodoStatus.TODO)]
    events = [_event(NOW - timedelta(days=1)), _event(NOW - timedelta(days=30))]
    notes = [_note(NOW)]
    stats = analytics.productivity_stats(todos, events, notes, TODAY)

    assert stats["weekly_productivity_score"] == pytest.approx(3.0 + 1.0 + 2.0)
    assert len(stats["daily_todo_completions"]) == 8
    assert stats["daily_todo_completions"][0]["date"] == TODAY - timedelta(days=7)
    assert stats["daily_todo_completions"][-1] == {"date": TODAY, "count": 1}


def test_average_completion_days():
    todos = [
        _todo(TodoStatus.DONE, created=NOW - timedelta(days=4), updated=NOW),
        _todo(TodoStatus.DONE, created=NOW - timedelta(days=2), updated=NOW),
        _todo(TodoStatus.TODO, created=NOW - timedelta(days=9)),
    ]
    assert analytics.average_completion_days(todos) == pytest.approx(3.0)
    assert analytics.average_completion_days([]) == 0.0


# ── API ───────────────────────────────────────────────────────────

def test_empty_dashboard(client, auth_headers):
    response = client.get("/api/v1/analytics/dashboard", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["todo_stats"]["total_todos"] == 0
    assert body["event_stats"]["total_events"] == 0
    assert body["note_stats"]["total_notes"] == 0
    productivity = body["productivity_stats"]
    assert productivity["weekly_productivity_score"] == 0.0
    assert len(productivity["daily_todo_completions"]) == 8
    assert productivity["daily_todo_completions"][-1]["date"] == date.today().isoformat()


def test_dashboard_reflects_user_data(client, auth_headers):
    done = client.post("/api/v1/todos", json={"title": "ship it"}, headers=auth_headers).json()
    client.post(f"/api/v1/todos/{done['id']}/toggle-status", headers=auth_headers)
    client.post("/api/v1/todos", json={"title": "later"}, headers=auth_headers)
    client.post("/api/v1/notes", json={"title": "idea", "tags": ["a", "b"]}, headers=auth_headers)

    body = client.get("/api/v1/analytics/dashboard", headers=auth_headers).json()
    assert body["todo_stats"]["completion_rate"] == 50.0
    assert body["note_stats"]["total_tags"] == 2
    assert body["productivity_stats"]["weekly_productivity_score"] == pytest.approx(3.0 + 2.0)


def test_todo_activity(client, auth_headers):
    client.post("/api/v1/todos", json={"title": "a", "priority": "HIGH"}, headers=auth_headers)
    client.post("/api/v1/todos", json={"title": "b"}, headers=auth_headers)

    body = client.get("/api/v1/analytics/todos/activity", params={"days": 6}, headers=auth_headers).json()
    assert len(body["daily_creations"]) == 7
    assert body["daily_creations"][-1]["count"] == 2
    assert body["priority_distribution"] == {"HIGH": 1, "MEDIUM": 1}
    assert body["status_distribution"] == {"TODO": 2}
    assert body["average_completion_time"] == 0.0


def test_todo_activity_rejects_inverted_range(client, auth_headers):
    response = client.get(
        "/api/v1/analytics/todos/activity",
        params={"date_from": "2024-05-10", "date_to": "2024-05-01"},
        headers=auth_headers,
    )
    assert response.status_code == 400
