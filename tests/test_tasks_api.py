# tests/test_tasks_api.py

from __future__ import annotations

from fastapi.testclient import TestClient

from tasktrack.store import Store

from .conftest import login, register


def _titles(client: TestClient, **params) -> list[str]:
    return [t["title"] for t in client.get("/api/tasks", params=params).json()["tasks"]]


def test_create_and_list_round_trip(logged_in: TestClient) -> None:
    r = logged_in.post("/api/tasks", json={"title": "Buy milk"})
    assert r.status_code == 200
    created = r.json()["task"]

    tasks = logged_in.get("/api/tasks").json()["tasks"]
    assert len(tasks) == 1
    task = tasks[0]
    assert task == created
    assert task["title"] == "Buy milk"
    assert task["description"] == ""
    assert task["completed"] is False
    assert isinstance(task["id"], int) and task["id"] > 0
    assert task["userId"] == 1
    assert task["createdAt"].endswith("Z")


def test_list_requires_session(client: TestClient) -> None:
    r = client.get("/api/tasks")
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Not authenticated"}


def test_every_task_route_requires_session(client: TestClient) -> None:
    assert client.post("/api/tasks", json={"title": "x"}).status_code == 401
    assert client.put("/api/tasks/1", json={"completed": True}).status_code == 401
    assert client.delete("/api/tasks/1").status_code == 401
    assert client.get("/api/tasks/stats").status_code == 401


def test_list_returns_only_own_tasks_in_creation_order(logged_in: TestClient, make_client) -> None:
    for title in ("first", "second", "third"):
        logged_in.post("/api/tasks", json={"title": title})

    bob = make_client()
    register(bob, "bob@example.com", username="bob")
    login(bob, "bob@example.com")
    bob.post("/api/tasks", json={"title": "bob's"})

    tasks = logged_in.get("/api/tasks").json()["tasks"]
    assert [t["title"] for t in tasks] == ["first", "second", "third"]
    assert {t["userId"] for t in tasks} == {1}


def test_create_with_empty_title_is_rejected(logged_in: TestClient, store: Store) -> None:
    for payload in ({"title": ""}, {"title": "   "}, {"description": "no title"}, {}):
        r = logged_in.post("/api/tasks", json=payload)
        assert r.status_code == 400
        assert r.json()["success"] is False
    assert store.count_tasks() == 0


def test_create_enforces_length_limits(logged_in: TestClient, store: Store) -> None:
    assert logged_in.post("/api/tasks", json={"title": "x" * 101}).status_code == 400
    assert logged_in.post("/api/tasks", json={"title": "ok", "description": "d" * 501}).status_code == 400
    assert logged_in.post("/api/tasks", json={"title": "x" * 100, "description": "d" * 500}).status_code == 200
    assert store.count_tasks() == 1


def test_create_trims_fields(logged_in: TestClient) -> None:
    task = logged_in.post("/api/tasks", json={"title": "  Buy milk ", "description": " 2 litres "}).json()["task"]
    assert task["title"] == "Buy milk"
    assert task["description"] == "2 litres"


def test_update_completed_only_flips_completed(logged_in: TestClient) -> None:
    created = logged_in.post("/api/tasks", json={"title": "Buy milk", "description": "2 litres"}).json()["task"]

    r = logged_in.put(f"/api/tasks/{created['id']}", json={"completed": True})
    assert r.status_code == 200
    task = r.json()["task"]
    assert task["completed"] is True
    assert task["title"] == "Buy milk"
    assert task["description"] == "2 litres"
    assert task["createdAt"] == created["createdAt"]


def test_update_title_and_description(logged_in: TestClient) -> None:
    tid = logged_in.post("/api/tasks", json={"title": "old"}).json()["task"]["id"]
    task = logged_in.put(f"/api/tasks/{tid}", json={"title": "new", "description": "more"}).json()["task"]
    assert (task["title"], task["description"], task["completed"]) == ("new", "more", False)


def test_update_rejects_invalid_fields(logged_in: TestClient) -> None:
    tid = logged_in.post("/api/tasks", json={"title": "keep"}).json()["task"]["id"]
    assert logged_in.put(f"/api/tasks/{tid}", json={"title": ""}).status_code == 400
    assert logged_in.put(f"/api/tasks/{tid}", json={"completed": "yes"}).status_code == 400
    assert logged_in.put(f"/api/tasks/{tid}", json={"completed": None}).status_code == 400
    assert _titles(logged_in) == ["keep"]


def test_update_missing_or_foreign_task_is_404(logged_in: TestClient, make_client) -> None:
    assert logged_in.put("/api/tasks/999", json={"completed": True}).status_code == 404
    assert logged_in.put("/api/tasks/abc", json={"completed": True}).status_code == 404

    bob = make_client()
    register(bob, "bob@example.com", username="bob")
    login(bob, "bob@example.com")
    bob_tid = bob.post("/api/tasks", json={"title": "bob's"}).json()["task"]["id"]

    r = logged_in.put(f"/api/tasks/{bob_tid}", json={"title": "hijacked"})
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Task not found"}
    assert _titles(bob) == ["bob's"]


def test_delete_task(logged_in: TestClient, store: Store) -> None:
    tid = logged_in.post("/api/tasks", json={"title": "gone"}).json()["task"]["id"]
    r = logged_in.delete(f"/api/tasks/{tid}")
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert store.count_tasks() == 0
    assert logged_in.delete(f"/api/tasks/{tid}").status_code == 404


def test_delete_missing_or_foreign_task_leaves_list_unchanged(logged_in: TestClient, make_client, store: Store) -> None:
    logged_in.post("/api/tasks", json={"title": "mine"})

    bob = make_client()
    register(bob, "bob@example.com", username="bob")
    login(bob, "bob@example.com")

    assert bob.delete("/api/tasks/1").status_code == 404
    assert logged_in.delete("/api/tasks/42").status_code == 404
    assert logged_in.delete("/api/tasks/nope").status_code == 404
    assert store.count_tasks() == 1
    assert _titles(logged_in) == ["mine"]


def test_ids_are_not_reused_after_delete(logged_in: TestClient) -> None:
    first = logged_in.post("/api/tasks", json={"title": "a"}).json()["task"]["id"]
    second = logged_in.post("/api/tasks", json={"title": "b"}).json()["task"]["id"]
    logged_in.delete(f"/api/tasks/{first}")
    third = logged_in.post("/api/tasks", json={"title": "c"}).json()["task"]["id"]
    assert third not in (first, second)
    assert third > second


def test_status_filter_and_stats(logged_in: TestClient) -> None:
    for title in ("a", "b", "c"):
        logged_in.post("/api/tasks", json={"title": title})
    logged_in.put("/api/tasks/2", json={"completed": True})

    assert _titles(logged_in, status="completed") == ["b"]
    assert _titles(logged_in, status="pending") == ["a", "c"]
    assert _titles(logged_in, status="all") == ["a", "b", "c"]
    assert logged_in.get("/api/tasks", params={"status": "bogus"}).status_code == 400

    r = logged_in.get("/api/tasks/stats")
    assert r.json() == {"success": True, "stats": {"total": 3, "completed": 1, "pending": 2}}


def test_framework_errors_use_envelope(logged_in: TestClient) -> None:
    r = logged_in.post("/api/tasks", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json()["success"] is False

    r = logged_in.get("/api/nowhere")
    assert r.status_code == 404
    assert r.json()["success"] is False

    r = logged_in.patch("/api/tasks/1", json={})
    assert r.status_code == 405
    assert r.json()["success"] is False


def test_health(client: TestClient) -> None:
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["success"] is True


def test_out_of_range_task_id_is_404(logged_in: TestClient, store: Store) -> None:
    logged_in.post("/api/tasks", json={"title": "mine"})
    huge = "99999999999999999999"
    for path in (f"/api/tasks/{huge}", f"/api/tasks/-{huge}", "/api/tasks/0"):
        r = logged_in.put(path, json={"completed": True})
        assert r.status_code == 404
        assert r.json() == {"success": False, "message": "Task not found"}
        assert logged_in.delete(path).status_code == 404
    assert store.count_tasks() == 1
