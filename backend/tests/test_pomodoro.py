from conftest import bearer

from personalhub.models.pomodoro import AlarmSound

SESSIONS = "/api/v1/pomodoro/sessions"
CONFIG = "/api/v1/pomodoro/config"


def _start(client, headers, **body):
    response = client.post(SESSIONS, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _act(client, headers, session_id, action, **extra):
    return client.put(f"{SESSIONS}/{session_id}", json={"action": action, **extra}, headers=headers)


def test_alarm_sound_fallback():
    assert AlarmSound.from_value("Bell") == AlarmSound.BELL
    assert AlarmSound.from_value("foghorn") == AlarmSound.DEFAULT
    assert AlarmSound.from_value(None) == AlarmSound.DEFAULT


def test_create_session_with_tasks(client, auth_headers):
    session = _start(
        client, auth_headers,
        tasks=[{"description": "write report"}, {"description": "answer mail"}],
    )
    assert session["status"] == "ACTIVE"
    assert session["session_type"] == "WORK"
    assert session["work_duration"] == 25
    assert session["break_duration"] == 5
    assert session["completed_cycles"] == 0
    assert [t["description"] for t in session["tasks"]] == ["write report", "answer mail"]
    assert [t["order_index"] for t in session["tasks"]] == [0, 1]


def test_only_one_active_session(client, auth_headers, other_user):
    _start(client, auth_headers)
    assert client.post(SESSIONS, json={}, headers=auth_headers).status_code == 409
    # Other users are unaffected
    _start(client, bearer(other_user))


def test_active_session_lookup(client, auth_headers):
    assert client.get(f"{SESSIONS}/active", headers=auth_headers).status_code == 404
    session = _start(client, auth_headers)
    assert client.get(f"{SESSIONS}/active", headers=auth_headers).json()["id"] == session["id"]


def test_pause_resume_complete(client, auth_headers):
    session = _start(client, auth_headers)
    sid = session["id"]

    assert _act(client, auth_headers, sid, "RESUME").status_code == 409
    assert _act(client, auth_headers, sid, "PAUSE").json()["status"] == "PAUSED"
    assert _act(client, auth_headers, sid, "PAUSE").status_code == 409
    assert _act(client, auth_headers, sid, "RESUME").json()["status"] == "ACTIVE"

    completed = _act(client, auth_headers, sid, "COMPLETE").json()
    assert completed["status"] == "COMPLETED"
    assert completed["completed_cycles"] == 1
    assert completed["end_time"] is not None

    # A finished session frees the slot for a new one
    _start(client, auth_headers)


def test_completing_a_break_does_not_count_a_cycle(client, auth_headers):
    session = _start(client, auth_headers, session_type="SHORT_BREAK")
    completed = _act(client, auth_headers, session["id"], "COMPLETE").json()
    assert completed["completed_cycles"] == 0


def test_switch_type_and_cancel(client, auth_headers):
    session = _start(client, auth_headers)
    switched = _act(client, auth_headers, session["id"], "SWITCH_TYPE", session_type="LONG_BREAK").json()
    assert switched["session_type"] == "LONG_BREAK"

    cancelled = _act(client, auth_headers, session["id"], "CANCEL").json()
    assert cancelled["status"] == "CANCELLED"
    assert client.get(f"{SESSIONS}/active", headers=auth_headers).status_code == 404


def test_unknown_action_is_rejected(client, auth_headers):
    session = _start(client, auth_headers)
    assert _act(client, auth_headers, session["id"], "SNOOZE").status_code == 400


def test_session_tasks(client, auth_headers):
    session = _start(client, auth_headers, tasks=[{"description": "first"}])
    url = f"{SESSIONS}/{session['id']}/tasks"

    added = client.post(url, json={"description": "second"}, headers=auth_headers)
    assert added.status_code == 201
    task = added.json()
    assert task["order_index"] == 1

    done = client.put(f"{url}/{task['id']}", json={"completed": True}, headers=auth_headers).json()
    assert done["completed"] is True

    tasks = client.get(url, headers=auth_headers).json()
    assert [t["description"] for t in tasks] == ["first", "second"]

    assert client.delete(f"{url}/{task['id']}", headers=auth_headers).status_code == 204
    assert [t["description"] for t in client.get(url, headers=auth_headers).json()] == ["first"]


def test_sessions_are_private(client, auth_headers, other_user):
    session = _start(client, auth_headers)
    other = bearer(other_user)
    assert client.get(f"{SESSIONS}/{session['id']}", headers=other).status_code == 404
    assert _act(client, other, session["id"], "CANCEL").status_code == 404


def test_session_history(client, auth_headers):
    first = _start(client, auth_headers)
    _act(client, auth_headers, first["id"], "COMPLETE")
    _start(client, auth_headers)

    history = client.get(SESSIONS, headers=auth_headers).json()
    assert history["total_elements"] == 2


def test_config_defaults_and_partial_update(client, auth_headers):
    config = client.get(CONFIG, headers=auth_headers).json()
    assert config == {
        "work_duration": 25,
        "short_break_duration": 5,
        "long_break_duration": 15,
        "cycles_before_long_break": 4,
        "alarm_sound": "default",
        "alarm_volume": 50,
        "auto_start_breaks": True,
        "auto_start_work": False,
    }

    updated = client.put(CONFIG, json={"work_duration": 50, "alarm_sound": "chime"}, headers=auth_headers).json()
    assert updated["work_duration"] == 50
    assert updated["alarm_sound"] == "chime"
    assert updated["short_break_duration"] == 5

    fallback = client.put(CONFIG, json={"alarm_sound": "foghorn"}, headers=auth_headers).json()
    assert fallback["alarm_sound"] == "default"
    assert fallback["work_duration"] == 50


def test_config_ranges(client, auth_headers):
    assert client.put(CONFIG, json={"alarm_volume": 150}, headers=auth_headers).status_code == 400
    assert client.put(CONFIG, json={"work_duration": 0}, headers=auth_headers).status_code == 400
