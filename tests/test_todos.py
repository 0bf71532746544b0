"""
Todo API tests: subtasks, cascade on last-task removal, ownership.
"""
from uuid import uuid4

from core.database import SessionLocal
from models import Todo, TodoTask


def _create(client, **fields):
    body = {"title": "Groceries", "tasks": [{"tasktitle": "milk"}, {"title": "eggs"}], **fields}
    response = client.post("/api/v1/todo", json=body)
    assert response.status_code == 201, response.text
    return response.json()["savedTodo"]


def _counts():
    session = SessionLocal()
    try:
        return session.query(Todo).count(), session.query(TodoTask).count()
    finally:
        session.close()


class TestCreateAndList:

    def test_create_defaults(self, alice):
        todo = _create(alice)
        assert todo["priority"] == "medium"
        assert [t["title"] for t in todo["tasks"]] == ["milk", "eggs"]
        assert all(t["completed"] is False for t in todo["tasks"])

    def test_invalid_priority_rejected(self, alice):
        response = alice.post("/api/v1/todo", json={"title": "x", "priority": "urgent"})
        assert response.status_code == 400

    def test_empty_list_is_200(self, alice):
        response = alice.get("/api/v1/todo")
        assert response.status_code == 200
        assert response.json()["todos"] == []

    def test_list_is_per_owner_and_cached(self, alice, bobby):
        _create(alice)
        _create(bobby, title="Bobby's")
        first = alice.get("/api/v1/todo").json()
        assert [t["title"] for t in first["todos"]] == ["Groceries"]
        assert "from cache" in alice.get("/api/v1/todo").json()["message"]

        _create(alice, title="Second")
        after_write = alice.get("/api/v1/todo").json()
        assert "from cache" not in after_write["message"]
        assert len(after_write["todos"]) == 2


class TestUpdate:

    def test_put_sets_fields_and_appends_tasks(self, alice):
        todo = _create(alice)
        response = alice.put(
            f"/api/v1/todo/{todo['id']}",
            json={"priority": "high", "tasks": [{"tasktitle": "bread"}]},
        )
        assert response.status_code == 200
        updated = response.json()["todoData"]
        assert updated["priority"] == "high"
        assert updated["title"] == "Groceries"
        assert [t["title"] for t in updated["tasks"]] == ["milk", "eggs", "bread"]

    def test_put_requires_a_field(self, alice):
        todo = _create(alice)
        assert alice.put(f"/api/v1/todo/{todo['id']}", json={}).status_code == 400

    def test_patch_task(self, alice):
        todo = _create(alice)
        task_id = todo["tasks"][0]["id"]
        response = alice.patch(
            f"/api/v1/todo/{todo['id']}",
            json={"taskId": task_id, "completed": True, "taskTitle": "oat milk"},
        )
        assert response.status_code == 200
        task = response.json()["todoData"]["tasks"][0]
        assert task["completed"] is True
        assert task["title"] == "oat milk"

    def test_patch_unknown_task_is_404(self, alice):
        todo = _create(alice)
        response = alice.patch(f"/api/v1/todo/{todo['id']}", json={"taskId": str(uuid4()), "completed": True})
        assert response.status_code == 404

    def test_patch_needs_task_id(self, alice):
        todo = _create(alice)
        assert alice.patch(f"/api/v1/todo/{todo['id']}", json={"completed": True}).status_code == 400

    def test_other_users_todo_forbidden(self, alice, bobby):
        todo = _create(alice)
        assert bobby.put(f"/api/v1/todo/{todo['id']}", json={"title": "mine"}).status_code == 403
        assert bobby.delete(f"/api/v1/todo/{todo['id']}").status_code == 403


class TestDelete:

    def test_delete_todo_removes_tasks(self, alice):
        todo = _create(alice)
        assert alice.delete(f"/api/v1/todo/{todo['id']}").status_code == 200
        assert _counts() == (0, 0)

    def test_removing_last_task_deletes_todo(self, alice):
        todo = _create(alice)
        first, second = (t["id"] for t in todo["tasks"])

        response = alice.delete(f"/api/v1/todo/task/{first}")
        assert response.status_code == 200
        assert _counts() == (1, 1)

        response = alice.delete(f"/api/v1/todo/task/{second}")
        assert response.status_code == 200
        assert "no remaining tasks" in response.json()["message"]
        assert _counts() == (0, 0)
        assert alice.get("/api/v1/todo").json()["todos"] == []

    def test_other_users_task_forbidden(self, alice, bobby):
        todo = _create(alice)
        task_id = todo["tasks"][0]["id"]
        assert bobby.delete(f"/api/v1/todo/task/{task_id}").status_code == 403
        assert _counts() == (1, 2)

    def test_missing_task_is_404(self, alice):
        assert alice.delete(f"/api/v1/todo/task/{uuid4()}").status_code == 404
