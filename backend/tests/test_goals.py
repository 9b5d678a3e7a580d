from datetime import date, timedelta

import pytest

from conftest import bearer
from personalhub.models.goal import GoalType
from personalhub.services.goals import (
    calculate_streak,
    longest_streak,
    next_period,
    normalize_date,
    previous_period,
    week_start,
)

WEDNESDAY = date(2024, 1, 10)


class TestPeriods:
    def test_week_start_monday(self):
        assert week_start(WEDNESDAY, 1) == date(2024, 1, 8)
        assert week_start(date(2024, 1, 8), 1) == date(2024, 1, 8)

    def test_week_start_sunday(self):
        assert week_start(WEDNESDAY, 0) == date(2024, 1, 7)
        assert week_start(date(2024, 1, 7), 0) == date(2024, 1, 7)

    def test_week_start_defaults_to_monday(self):
        assert week_start(WEDNESDAY, None) == date(2024, 1, 8)

    def test_normalize(self):
        assert normalize_date(WEDNESDAY, GoalType.DAILY) == WEDNESDAY
        assert normalize_date(WEDNESDAY, GoalType.WEEKLY, 1) == date(2024, 1, 8)
        assert normalize_date(WEDNESDAY, GoalType.MONTHLY) == date(2024, 1, 1)
        assert normalize_date(WEDNESDAY, GoalType.ANNUAL) == date(2024, 1, 1)

    def test_previous_and_next_period(self):
        assert previous_period(date(2024, 3, 1), GoalType.MONTHLY) == date(2024, 2, 1)
        assert previous_period(date(2024, 1, 1), GoalType.MONTHLY) == date(2023, 12, 1)
        assert next_period(date(2024, 12, 1), GoalType.MONTHLY) == date(2025, 1, 1)
        assert previous_period(date(2024, 1, 1), GoalType.ANNUAL) == date(2023, 1, 1)
        assert next_period(date(2024, 1, 8), GoalType.WEEKLY) == date(2024, 1, 15)


class TestStreaks:
    def test_daily_current_and_longest(self):
        achieved = [WEDNESDAY - timedelta(days=n) for n in (0, 1, 2, 4, 5, 6, 7)]
        info = calculate_streak(achieved, GoalType.DAILY, WEDNESDAY)
        assert info.current == 3
        assert info.longest == 4

    def test_current_is_zero_when_reference_period_missed(self):
        achieved = [WEDNESDAY - timedelta(days=1), WEDNESDAY - timedelta(days=2)]
        info = calculate_streak(achieved, GoalType.DAILY, WEDNESDAY)
        assert info.current == 0
        assert info.longest == 2

    def test_weekly_streak_uses_any_day_of_the_week(self):
        achieved = [date(2024, 1, 12), date(2024, 1, 2), date(2023, 12, 28)]
        info = calculate_streak(achieved, GoalType.WEEKLY, WEDNESDAY, week_start_day=1)
        assert info.current == 3
        assert info.longest == 3

    def test_monthly_streak_across_year_boundary(self):
        achieved = [date(2024, 1, 20), date(2023, 12, 5), date(2023, 10, 1)]
        info = calculate_streak(achieved, GoalType.MONTHLY, WEDNESDAY)
        assert info.current == 2
        assert info.longest == 2

    def test_no_achievements(self):
        info = calculate_streak([], GoalType.ANNUAL, WEDNESDAY)
        assert (info.current, info.longest) == (0, 0)

    def test_longest_ignores_duplicates(self):
        days = [date(2024, 1, 1), date(2024, 1, 1), date(2024, 1, 2)]
        assert longest_streak(days, GoalType.DAILY) == 2


# ── API ───────────────────────────────────────────────────────────

def _create_goal(client, headers, **overrides):
    body = {"title": "Read", "goal_type": "DAILY"}
    body.update(overrides)
    response = client.post("/api/v1/goals", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_goal_defaults_to_current_year(client, auth_headers):
    goal = _create_goal(client, auth_headers)
    year = date.today().year
    assert goal["start_date"] == f"{year}-01-01"
    assert goal["end_date"] == f"{year}-12-31"
    assert goal["is_active"] is True
    assert goal["completed"] is False


def test_create_goal_rejects_inverted_range(client, auth_headers):
    response = client.post(
        "/api/v1/goals",
        json={"title": "x", "goal_type": "DAILY", "start_date": "2024-05-01", "end_date": "2024-04-01"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_toggle_achievement_marks_goal_completed(client, auth_headers):
    goal = _create_goal(client, auth_headers)

    toggled = client.post(f"/api/v1/goals/{goal['id']}/achievements", json={}, headers=auth_headers).json()
    assert toggled["achieved"] is True
    assert toggled["period_date"] == date.today().isoformat()
    assert toggled["period_type"] == "DAILY"

    grouped = client.get("/api/v1/goals", headers=auth_headers).json()
    assert [g["id"] for g in grouped["daily"]] == [goal["id"]]
    assert grouped["daily"][0]["completed"] is True
    assert grouped["daily"][0]["current_streak"] == 1
    assert grouped["weekly"] == [] and grouped["monthly"] == [] and grouped["annual"] == []

    untoggled = client.delete(f"/api/v1/goals/{goal['id']}/achievements", headers=auth_headers).json()
    assert untoggled["achieved"] is False


def test_weekly_achievement_is_stored_at_week_start(client, auth_headers):
    goal = _create_goal(client, auth_headers, goal_type="WEEKLY", start_date="2024-01-01", end_date="2024-12-31")
    toggled = client.post(
        f"/api/v1/goals/{goal['id']}/achievements", json={"date": "2024-01-10"}, headers=auth_headers
    ).json()
    assert toggled["period_date"] == "2024-01-08"

    grouped = client.get("/api/v1/goals", params={"date": "2024-01-12"}, headers=auth_headers).json()
    assert grouped["weekly"][0]["completed"] is True


def test_week_start_day_setting_changes_weekly_periods(client, user, auth_headers):
    client.put(f"/api/v1/users/{user.id}/week-start-day", json={"week_start_day": 0}, headers=auth_headers)
    goal = _create_goal(client, auth_headers, goal_type="WEEKLY", start_date="2024-01-01", end_date="2024-12-31")
    toggled = client.post(
        f"/api/v1/goals/{goal['id']}/achievements", json={"date": "2024-01-10"}, headers=auth_headers
    ).json()
    assert toggled["period_date"] == "2024-01-07"


def test_streak_endpoint_follows_toggles(client, auth_headers):
    goal = _create_goal(client, auth_headers)
    client.post(f"/api/v1/goals/{goal['id']}/achievements", json={}, headers=auth_headers)

    streak = client.get(f"/api/v1/goals/{goal['id']}/streak", headers=auth_headers).json()
    assert streak["current_streak"] == 1
    assert streak["longest_streak"] == 1
    assert streak["last_achieved_date"] == date.today().isoformat()

    client.delete(f"/api/v1/goals/{goal['id']}/achievements", headers=auth_headers)
    streak = client.get(f"/api/v1/goals/{goal['id']}/streak", headers=auth_headers).json()
    assert streak["current_streak"] == 0
    assert streak["streak_broken_date"] == date.today().isoformat()
    assert streak["last_achieved_date"] is None


def test_streak_snapshot_for_backdated_achievements(client, auth_headers):
    goal = _create_goal(client, auth_headers)
    yesterday = date.today() - timedelta(days=1)
    client.post(f"/api/v1/goals/{goal['id']}/achievements", json={"date": yesterday.isoformat()}, headers=auth_headers)

    streak = client.get(f"/api/v1/goals/{goal['id']}/streak", headers=auth_headers).json()
    assert streak["current_streak"] == 0
    assert streak["longest_streak"] == 1
    assert streak["last_achieved_date"] == yesterday.isoformat()
    assert streak["streak_broken_date"] is None

    client.post(f"/api/v1/goals/{goal['id']}/achievements", json={}, headers=auth_headers)
    streak = client.get(f"/api/v1/goals/{goal['id']}/streak", headers=auth_headers).json()
    assert streak["current_streak"] == 2
    assert streak["longest_streak"] == 2
    assert streak["last_achieved_date"] == date.today().isoformat()


def test_achievement_history(client, auth_headers):
    goal = _create_goal(client, auth_headers, start_date="2024-01-01", end_date="2024-12-31")
    for day in ("2024-01-02", "2024-01-03"):
        client.post(f"/api/v1/goals/{goal['id']}/achievements", json={"date": day}, headers=auth_headers)

    history = client.get(
        f"/api/v1/goals/{goal['id']}/achievements",
        params={"from": "2024-01-01", "to": "2024-01-04"},
        headers=auth_headers,
    ).json()
    assert history["total_days"] == 4
    assert history["achieved_days"] == 2
    assert history["achievement_rate"] == pytest.approx(0.5)
    assert [r["achieved"] for r in history["achievements"]] == [False, True, True, False]


def test_history_of_goal_not_started_yet(client, auth_headers):
    next_year = date.today().year + 1
    goal = _create_goal(client, auth_headers, start_date=f"{next_year}-01-01", end_date=f"{next_year}-12-31")

    response = client.get(f"/api/v1/goals/{goal['id']}/achievements", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"achievements": [], "total_days": 0, "achieved_days": 0, "achievement_rate": 0.0}

    inverted = client.get(
        f"/api/v1/goals/{goal['id']}/achievements",
        params={"from": "2024-01-04", "to": "2024-01-01"},
        headers=auth_headers,
    )
    assert inverted.status_code == 400


def test_filters(client, auth_headers):
    current = _create_goal(client, auth_headers, title="current")
    old = _create_goal(client, auth_headers, title="old", start_date="2020-01-01", end_date="2020-12-31")
    paused = _create_goal(client, auth_headers, title="paused")
    client.put(f"/api/v1/goals/{paused['id']}", json={"title": "paused", "is_active": False}, headers=auth_headers)

    def ids(filter_name):
        body = client.get("/api/v1/goals", params={"filter": filter_name}, headers=auth_headers).json()
        return {g["id"] for g in body["daily"]}

    assert ids("active") == {current["id"]}
    assert ids("inactive") == {old["id"], paused["id"]}
    assert ids("all") == {current["id"], old["id"], paused["id"]}

    response = client.get("/api/v1/goals", params={"filter": "bogus"}, headers=auth_headers)
    assert response.status_code == 400


def test_goals_are_private(client, auth_headers, other_user):
    goal = _create_goal(client, auth_headers)
    other = bearer(other_user)
    assert client.get(f"/api/v1/goals/{goal['id']}/streak", headers=other).status_code == 404
    assert client.delete(f"/api/v1/goals/{goal['id']}", headers=other).status_code == 404
    assert client.get("/api/v1/goals", headers=other).json()["daily"] == []


def test_delete_goal(client, auth_headers):
    goal = _create_goal(client, auth_headers)
    client.post(f"/api/v1/goals/{goal['id']}/achievements", json={}, headers=auth_headers)
    assert client.delete(f"/api/v1/goals/{goal['id']}", headers=auth_headers).status_code == 204
    assert client.get(f"/api/v1/goals/{goal['id']}/streak", headers=auth_headers).status_code == 404
