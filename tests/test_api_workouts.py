import asyncio

import pytest
from fastapi import HTTPException

from liftlog.engine.session_manager import SessionManager
from liftlog.routers.workouts import add_exercise_to_session
from liftlog.schemas.workouts import AddExerciseIn


def _create_exercise(client, headers, name="Back Squat"):
    res = client.post("/workouts/exercises", json={"name": name, "primary_muscles": ["quads"]}, headers=headers)
    assert res.status_code == 201
    return res.json()


def _start(client, headers, name="Leg Day"):
    res = client.post("/workouts/session/start", json={"name": name}, headers=headers)
    assert res.status_code == 201
    return res.json()


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_requires_user_header(client):
    assert client.get("/workouts/session").status_code == 401
    assert client.post("/workouts/session/start", json={}).status_code == 401


def test_session_state_when_idle(client, headers):
    body = client.get("/workouts/session", headers=headers).json()
    assert body["session"] is None
    assert body["elapsed_seconds"] == 0
    assert body["rest_timer"]["is_running"] is False


def test_second_start_conflicts(client, headers):
    _start(client, headers)
    res = client.post("/workouts/session/start", json={"name": "Again"}, headers=headers)
    assert res.status_code == 409


def test_session_is_private_to_its_user(client, headers):
    _start(client, headers)
    other = {"X-User-Id": "user-2"}
    assert client.get("/workouts/session", headers=other).json()["session"] is None
    assert client.post("/workouts/session/finish", headers=other).status_code == 404
    assert client.post("/workouts/session/discard", headers=other).status_code == 404


def test_log_and_finish_workout(client, headers):
    squat = _create_exercise(client, headers)
    _start(client, headers)

    ex = client.post("/workouts/session/exercises", json={"exercise_id": squat["id"], "sets": 2}, headers=headers).json()
    assert [s["set_number"] for s in ex["sets"]] == [1, 2]
    assert ex["exercise"]["name"] == "Back Squat"
    first, second = ex["sets"]

    res = client.patch(
        f"/workouts/session/exercises/{ex['id']}/sets/{first['id']}",
        json={"actual_weight": 100, "actual_reps": 5},
        headers=headers,
    )
    assert res.json()["set"]["actual_weight"] == 100

    done = client.post(f"/workouts/session/exercises/{ex['id']}/sets/{first['id']}/complete", headers=headers).json()
    assert done["completed"] is True
    assert done["is_pr"] is True
    assert done["pr_event"]["estimated_1rm"] > 116
    assert done["rest_timer"] == {"is_running": True, "remaining": 90, "total": 90, "exercise_id": ex["id"]}

    again = client.post(f"/workouts/session/exercises/{ex['id']}/sets/{first['id']}/complete", headers=headers).json()
    assert again["completed"] is False

    # No weight on the second set: bodyweight rest
    client.patch(
        f"/workouts/session/exercises/{ex['id']}/sets/{second['id']}",
        json={"actual_reps": 12},
        headers=headers,
    )
    done = client.post(f"/workouts/session/exercises/{ex['id']}/sets/{second['id']}/complete", headers=headers).json()
    assert done["rest_timer"]["total"] == 60

    result = client.post("/workouts/session/finish", headers=headers).json()
    assert result["total_volume_kg"] == 500
    assert [o["status"] for o in result["outcomes"]] == ["saved"]
    assert result["outcomes"][0]["sets_saved"] == 2

    assert client.get("/workouts/session", headers=headers).json()["session"] is None
    history = client.get("/workouts/history", headers=headers).json()
    assert [w["id"] for w in history] == [result["workout_id"]]
    assert history[0]["name"] == "Leg Day"


def test_finish_without_session(client, headers):
    assert client.post("/workouts/session/finish", headers=headers).status_code == 404


def test_discard(client, headers):
    session = _start(client, headers)
    res = client.post("/workouts/session/discard", headers=headers)
    assert res.json() == {"discarded": True, "session_id": session["id"]}
    assert client.get("/workouts/history", headers=headers).json() == []


def test_add_unknown_catalog_exercise(client, headers):
    _start(client, headers)
    res = client.post("/workouts/session/exercises", json={"exercise_id": "nope"}, headers=headers)
    assert res.status_code == 404


def test_edit_and_remove_in_session(client, headers):
    squat = _create_exercise(client, headers)
    _start(client, headers)
    ex = client.post("/workouts/session/exercises", json={"exercise_id": squat["id"]}, headers=headers).json()

    res = client.patch(f"/workouts/session/exercises/{ex['id']}/notes", json={"notes": "low bar"}, headers=headers)
    assert res.json()["updated"] is True

    created = client.post(f"/workouts/session/exercises/{ex['id']}/sets", headers=headers).json()
    assert created["created"] is True
    assert created["set"]["set_number"] == 2

    res = client.delete(f"/workouts/session/exercises/{ex['id']}/sets/{ex['sets'][0]['id']}", headers=headers)
    assert res.json()["deleted"] is True

    state = client.get("/workouts/session", headers=headers).json()["session"]
    assert state["exercises"][0]["notes"] == "low bar"
    assert [s["set_number"] for s in state["exercises"][0]["sets"]] == [1]

    # Unknown ids are tolerated
    assert client.post("/workouts/session/exercises/nope/sets", headers=headers).json()["created"] is False
    assert client.delete("/workouts/session/exercises/nope", headers=headers).json()["deleted"] is False

    assert client.delete(f"/workouts/session/exercises/{ex['id']}", headers=headers).json()["deleted"] is True
    assert client.get("/workouts/session", headers=headers).json()["session"]["exercises"] == []


def test_rest_timer_endpoints(client, headers):
    _start(client, headers)
    state = client.post("/workouts/session/rest", json={"seconds": 45}, headers=headers).json()
    assert state["remaining"] == 45

    state = client.post("/workouts/session/rest/extend", headers=headers).json()
    assert (state["remaining"], state["total"]) == (75, 75)

    state = client.delete("/workouts/session/rest", headers=headers).json()
    assert state == {"is_running": False, "remaining": 0, "total": 0, "exercise_id": None}


def test_template_flow(client, headers):
    squat = _create_exercise(client, headers)
    res = client.post(
        "/workouts/templates",
        json={
            "name": "Legs",
            "exercises": [
                {"exercise_id": squat["id"], "sets": [{"target_weight": 100, "target_reps": 5}] * 3},
            ],
        },
        headers=headers,
    )
    assert res.status_code == 201
    template = res.json()
    assert len(template["exercises"][0]["sets"]) == 3
    assert [t["id"] for t in client.get("/workouts/templates", headers=headers).json()] == [template["id"]]

    session = client.post(f"/workouts/templates/{template['id']}/start", headers=headers).json()
    assert session["template_id"] == template["id"]
    sets = session["exercises"][0]["sets"]
    assert [(s["actual_weight"], s["actual_reps"], s["status"]) for s in sets] == [(100, 5, "pending")] * 3

    assert client.post(f"/workouts/templates/{template['id']}/start", headers=headers).status_code == 409


def test_start_missing_template(client, headers):
    assert client.post("/workouts/templates/missing/start", headers=headers).status_code == 404


def test_plates(client):
    body = client.get("/workouts/plates", params={"total": 100}).json()
    assert body["bar"] == 20
    assert body["per_side"] == [{"weight": 25, "count": 1}, {"weight": 15, "count": 1}]
    assert body["remainder"] == 0

    body = client.get("/workouts/plates", params={"total": 61, "bar": 15}).json()
    assert body["per_side"] == [{"weight": 20, "count": 1}, {"weight": 2.5, "count": 1}]
    assert body["remainder"] == 0.5


@pytest.mark.asyncio
async def test_add_exercise_does_not_leak_into_a_newer_session(store, squat):
    store.catalog[squat.id] = squat
    store.previous_gate = asyncio.Event()
    manager = SessionManager(store)
    first = manager.start_empty("Leg Day", "user-1")

    pending = asyncio.create_task(
        add_exercise_to_session(AddExerciseIn(exercise_id=squat.id), session=first, manager=manager, store=store)
    )
    await asyncio.sleep(0.01)
    manager.discard()
    second = manager.start_empty("Arms", "user-2")
    store.previous_gate.set()

    with pytest.raises(HTTPException) as info:
        await pending
    assert info.value.status_code == 409
    assert second.exercises == []
    assert first.exercises == []


def _finished_workout(client, headers):
    squat = _create_exercise(client, headers)
    _start(client, headers)
    ex = client.post("/workouts/session/exercises", json={"exercise_id": squat["id"], "sets": 2}, headers=headers).json()
    for ws in ex["sets"]:
        client.patch(
            f"/workouts/session/exercises/{ex['id']}/sets/{ws['id']}",
            json={"actual_weight": 100, "actual_reps": 5, "rpe": 8},
            headers=headers,
        )
        client.post(f"/workouts/session/exercises/{ex['id']}/sets/{ws['id']}/complete", headers=headers)
    client.patch(f"/workouts/session/exercises/{ex['id']}/notes", json={"notes": "belt"}, headers=headers)
    return client.post("/workouts/session/finish", headers=headers).json(), squat


def test_workout_detail_reads_back_the_commit(client, headers):
    result, squat = _finished_workout(client, headers)

    res = client.get(f"/workouts/history/{result['workout_id']}", headers=headers)
    assert res.status_code == 200
    detail = res.json()
    assert detail["total_volume_kg"] == 1000
    assert len(detail["exercises"]) == 1
    ex = detail["exercises"][0]
    assert ex["exercise_id"] == squat["id"]
    assert ex["exercise"]["name"] == "Back Squat"
    assert ex["notes"] == "belt"
    assert [(s["set_number"], s["actual_weight"], s["actual_reps"], s["rpe"]) for s in ex["sets"]] == [
        (1, 100, 5, 8),
        (2, 100, 5, 8),
    ]


def test_workout_detail_and_delete_are_owner_scoped(client, headers):
    result, _ = _finished_workout(client, headers)
    url = f"/workouts/history/{result['workout_id']}"
    other = {"X-User-Id": "user-2"}

    assert client.get(url, headers=other).status_code == 404
    assert client.delete(url, headers=other).status_code == 404
    assert client.get(url, headers=headers).status_code == 200

    res = client.delete(url, headers=headers)
    assert res.json() == {"deleted": True, "workout_id": result["workout_id"]}
    assert client.get(url, headers=headers).status_code == 404
    assert client.get("/workouts/history", headers=headers).json() == []
    assert client.delete(url, headers=headers).status_code == 404


def _template(client, headers):
    squat = _create_exercise(client, headers)
    return client.post(
        "/workouts/templates",
        json={
            "name": "Legs",
            "description": "heavy day",
            "exercises": [
                {"exercise_id": squat["id"], "sets": [{"target_weight": 100, "target_reps": 5, "tag": "working"}] * 2},
            ],
        },
        headers=headers,
    ).json()


def test_duplicate_template(client, headers):
    template = _template(client, headers)

    res = client.post(f"/workouts/templates/{template['id']}/duplicate", headers=headers)
    assert res.status_code == 201
    copy = res.json()
    assert copy["id"] != template["id"]
    assert copy["name"] == "Legs (copy)"
    assert copy["description"] == "heavy day"
    assert [(s["target_weight"], s["target_reps"], s["tag"]) for s in copy["exercises"][0]["sets"]] == [
        (100, 5, "working"),
        (100, 5, "working"),
    ]
    assert copy["exercises"][0]["id"] != template["exercises"][0]["id"]
    assert len(client.get("/workouts/templates", headers=headers).json()) == 2

    other = {"X-User-Id": "user-2"}
    assert client.post(f"/workouts/templates/{template['id']}/duplicate", headers=other).status_code == 404


def test_delete_template(client, headers):
    template = _template(client, headers)
    other = {"X-User-Id": "user-2"}

    assert client.delete(f"/workouts/templates/{template['id']}", headers=other).status_code == 404
    res = client.delete(f"/workouts/templates/{template['id']}", headers=headers)
    assert res.json() == {"deleted": True, "template_id": template["id"]}
    assert client.get("/workouts/templates", headers=headers).json() == []
    assert client.post(f"/workouts/templates/{template['id']}/start", headers=headers).status_code == 404


def test_template_ids_are_assigned_by_the_server(client, headers):
    squat = _create_exercise(client, headers)
    payload = {
        "name": "Legs",
        "exercises": [{"id": "ex-1", "exercise_id": squat["id"], "sets": [{"id": "set-1", "target_reps": 5}]}],
    }
    first = client.post("/workouts/templates", json=payload, headers=headers)
    second = client.post("/workouts/templates", json=payload, headers=headers)

    assert (first.status_code, second.status_code) == (201, 201)
    assert first.json()["exercises"][0]["id"] != "ex-1"
    assert first.json()["exercises"][0]["sets"][0]["id"] != second.json()["exercises"][0]["sets"][0]["id"]
