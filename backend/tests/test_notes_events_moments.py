from datetime import datetime, timedelta, timezone

from conftest import bearer

NOTES = "/api/v1/notes"
EVENTS = "/api/v1/events"
MOMENTS = "/api/v1/moments"


# ── Notes ─────────────────────────────────────────────────────────

def _note(client, headers, title, content=None, tags=()):
    response = client.post(NOTES, json={"title": title, "content": content, "tags": list(tags)}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_note_tags_are_trimmed(client, auth_headers):
    note = _note(client, auth_headers, "Groceries", tags=[" food ", "", "Home"])
    assert note["tags"] == ["food", "Home"]


def test_note_partial_update(client, auth_headers):
    note = _note(client, auth_headers, "Draft", "first version", ["wip"])
    updated = client.put(f"{NOTES}/{note['id']}", json={"content": "second version"}, headers=auth_headers).json()
    assert updated["title"] == "Draft"
    assert updated["content"] == "second version"
    assert updated["tags"] == ["wip"]


def test_note_search_is_case_insensitive(client, auth_headers):
    _note(client, auth_headers, "Python tips", "use generators")
    _note(client, auth_headers, "Shopping", "buy PYTHON book")
    _note(client, auth_headers, "Unrelated", "nothing here")

    found = client.get(f"{NOTES}/search", params={"query": "python"}, headers=auth_headers).json()
    assert sorted(n["title"] for n in found) == ["Python tips", "Shopping"]


def test_note_search_treats_wildcards_literally(client, auth_headers):
    _note(client, auth_headers, "Discount", "50% off")
    _note(client, auth_headers, "snake_case", "naming")
    _note(client, auth_headers, "Plain", "nothing special")

    percent = client.get(f"{NOTES}/search", params={"query": "%"}, headers=auth_headers).json()
    assert [n["title"] for n in percent] == ["Discount"]
    underscore = client.get(f"{NOTES}/search", params={"query": "_"}, headers=auth_headers).json()
    assert [n["title"] for n in underscore] == ["snake_case"]


def test_note_tag_lookup_matches_whole_tags(client, auth_headers):
    _note(client, auth_headers, "A", tags=["work"])
    _note(client, auth_headers, "B", tags=["homework"])
    _note(client, auth_headers, "C", tags=["Work", "urgent"])

    found = client.get(f"{NOTES}/tag/work", headers=auth_headers).json()
    assert sorted(n["title"] for n in found) == ["A", "C"]


def test_notes_are_private_and_deletable(client, auth_headers, other_user):
    note = _note(client, auth_headers, "Secret")
    other = bearer(other_user)
    assert client.get(f"{NOTES}/{note['id']}", headers=other).status_code == 404
    assert client.get(NOTES, headers=other).json()["total_elements"] == 0

    assert client.delete(f"{NOTES}/{note['id']}", headers=auth_headers).status_code == 204
    assert client.get(f"{NOTES}/{note['id']}", headers=auth_headers).status_code == 404


# ── Events ────────────────────────────────────────────────────────

def _event(client, headers, title, start, hours=1, **extra):
    body = {
        "title": title,
        "start_date_time": start.isoformat(),
        "end_date_time": (start + timedelta(hours=hours)).isoformat(),
    }
    body.update(extra)
    response = client.post(EVENTS, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_event_end_must_not_precede_start(client, auth_headers):
    response = client.post(
        EVENTS,
        json={"title": "x", "start_date_time": "2024-05-01T10:00:00", "end_date_time": "2024-05-01T09:00:00"},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_event_listing_defaults_to_start_order(client, auth_headers):
    _event(client, auth_headers, "later", datetime(2024, 5, 2, 9))
    _event(client, auth_headers, "earlier", datetime(2024, 5, 1, 9), location="Office", all_day=False)

    page = client.get(EVENTS, headers=auth_headers).json()
    assert [e["title"] for e in page["content"]] == ["earlier", "later"]
    assert page["content"][0]["location"] == "Office"


def test_event_range_returns_overlapping_events(client, auth_headers):
    _event(client, auth_headers, "spans into range", datetime(2024, 5, 1, 23), hours=2)
    _event(client, auth_headers, "inside", datetime(2024, 5, 2, 12))
    _event(client, auth_headers, "after", datetime(2024, 5, 4, 12))

    found = client.get(
        f"{EVENTS}/range",
        params={"start_date": "2024-05-02T00:00:00", "end_date": "2024-05-03T00:00:00"},
        headers=auth_headers,
    ).json()
    assert [e["title"] for e in found] == ["spans into range", "inside"]


def test_event_partial_update_checks_combined_range(client, auth_headers):
    event = _event(client, auth_headers, "standup", datetime(2024, 5, 1, 9))
    url = f"{EVENTS}/{event['id']}"

    moved = client.put(url, json={"title": "daily standup", "color": "#ff0000"}, headers=auth_headers).json()
    assert moved["title"] == "daily standup"
    assert moved["start_date_time"] == "2024-05-01T09:00:00"

    response = client.put(url, json={"end_date_time": "2024-05-01T08:00:00"}, headers=auth_headers)
    assert response.status_code == 400


def _local(utc_text):
    return datetime.fromisoformat(utc_text.replace("Z", "+00:00")).astimezone().replace(tzinfo=None)


def test_event_utc_timestamps_are_stored_as_local_time(client, auth_headers):
    response = client.post(
        EVENTS,
        json={"title": "call", "start_date_time": "2026-05-01T10:00:00Z", "end_date_time": "2026-05-01T11:00:00Z"},
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    event = response.json()
    assert datetime.fromisoformat(event["start_date_time"]) == _local("2026-05-01T10:00:00Z")

    url = f"{EVENTS}/{event['id']}"
    extended = client.put(url, json={"end_date_time": "2026-05-01T12:00:00Z"}, headers=auth_headers)
    assert extended.status_code == 200, extended.text
    assert datetime.fromisoformat(extended.json()["end_date_time"]) == _local("2026-05-01T12:00:00Z")

    too_early = client.put(url, json={"end_date_time": "2026-05-01T09:00:00Z"}, headers=auth_headers)
    assert too_early.status_code == 400

    found = client.get(
        f"{EVENTS}/range",
        params={"start_date": "2026-05-01T00:00:00Z", "end_date": "2026-05-02T00:00:00Z"},
        headers=auth_headers,
    ).json()
    assert [e["title"] for e in found] == ["call"]


def test_events_are_private(client, auth_headers, other_user):
    event = _event(client, auth_headers, "dentist", datetime(2024, 5, 1, 9))
    other = bearer(other_user)
    assert client.get(f"{EVENTS}/{event['id']}", headers=other).status_code == 404
    assert client.delete(f"{EVENTS}/{event['id']}", headers=other).status_code == 404
    assert client.delete(f"{EVENTS}/{event['id']}", headers=auth_headers).status_code == 204


# ── Moments ───────────────────────────────────────────────────────

def _moment(client, headers, content, tags=()):
    response = client.post(MOMENTS, json={"content": content, "tags": list(tags)}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_default_moment_tags(client, auth_headers):
    tags = client.get(f"{MOMENTS}/tags/default", headers=auth_headers).json()
    assert tags == ["Ideas", "Discoveries", "Emotions", "Log", "Other"]


def test_moment_search_by_text_and_tag(client, auth_headers):
    _moment(client, auth_headers, "Idea for a garden shed", ["Ideas"])
    _moment(client, auth_headers, "Garden looks great today", ["Log"])
    _moment(client, auth_headers, "Felt calm", ["Emotions"])

    by_text = client.get(f"{MOMENTS}/search", params={"query": "GARDEN"}, headers=auth_headers).json()
    assert len(by_text) == 2

    both = client.get(f"{MOMENTS}/search", params={"query": "garden", "tag": "ideas"}, headers=auth_headers).json()
    assert [m["content"] for m in both] == ["Idea for a garden shed"]

    tagged = client.get(f"{MOMENTS}/tag/log", headers=auth_headers).json()
    assert [m["content"] for m in tagged] == ["Garden looks great today"]

    assert client.get(f"{MOMENTS}/search", params={"query": "%"}, headers=auth_headers).json() == []


def test_moment_range_and_update(client, auth_headers):
    moment = _moment(client, auth_headers, "first entry", ["Log"])
    now = datetime.now()
    found = client.get(
        f"{MOMENTS}/range",
        params={
            "start_date": (now - timedelta(hours=1)).isoformat(),
            "end_date": (now + timedelta(hours=1)).isoformat(),
        },
        headers=auth_headers,
    ).json()
    assert [m["id"] for m in found] == [moment["id"]]

    updated = client.put(
        f"{MOMENTS}/{moment['id']}", json={"content": "edited entry", "tags": ["Other"]}, headers=auth_headers
    ).json()
    assert updated["content"] == "edited entry"
    assert updated["tags"] == ["Other"]

    inverted = client.get(
        f"{MOMENTS}/range",
        params={"start_date": "2024-05-02T00:00:00", "end_date": "2024-05-01T00:00:00"},
        headers=auth_headers,
    )
    assert inverted.status_code == 400


def test_moments_are_private(client, auth_headers, other_user):
    moment = _moment(client, auth_headers, "mine")
    assert client.get(f"{MOMENTS}/{moment['id']}", headers=bearer(other_user)).status_code == 404
    assert client.delete(f"{MOMENTS}/{moment['id']}", headers=auth_headers).status_code == 204
