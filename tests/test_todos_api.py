import uuid
from datetime import datetime

from conftest import auth_headers, login, register


def create_todo_payload(title="Test Task", description="Do something"):
    payload = {"title": title}
    if description is not None:
        payload["description"] = description
    return payload


def assert_todo_shape(todo: dict):
    for key in ["id", "user_id", "title", "description", "completed", "created_at", "updated_at"]:
        assert key in todo
    uuid.UUID(todo["id"])
    assert isinstance(todo["title"], str)
    assert isinstance(todo["completed"], bool)
    datetime.fromisoformat(todo["created_at"].replace("Z", "+00:00"))
    datetime.fromisoformat(todo["updated_at"].replace("Z", "+00:00"))


def create_todo(client, token, **kwargs):
    res = client.post("/api/v1/todos/", json=create_todo_payload(**kwargs), headers=auth_headers(token))
    assert res.status_code == 201, res.text
    return res.json()["data"]


class TestTodosCRUD:
    def test_create_todo(self, client, user_token):
        res = client.post(
            "/api/v1/todos/",
            json=create_todo_payload(title="Buy milk", description="2 liters"),
            headers=auth_headers(user_token),
        )
        assert res.status_code == 201
        body = res.json()
        assert body["success"] is True
        todo = body["data"]
        assert_todo_shape(todo)
        assert todo["title"] == "Buy milk"
        assert todo["description"] == "2 liters"
        assert todo["completed"] is False
        assert todo["created_at"] == todo["updated_at"]

    def test_create_todo_without_description(self, client, user_token):
        todo = create_todo(client, user_token, title="Read book", description=None)
        assert todo["description"] is None

    def test_create_todo_title_is_trimmed(self, client, user_token):
        todo = create_todo(client, user_token, title="  Padded  ")
        assert todo["title"] == "Padded"

    def test_get_todo(self, client, user_token):
        created = create_todo(client, user_token, title="Read book")
        res = client.get(f"/api/v1/todos/{created['id']}", headers=auth_headers(user_token))
        assert res.status_code == 200
        assert res.json()["data"] == created

    def test_get_todo_not_found(self, client, user_token):
        res = client.get(f"/api/v1/todos/{uuid.uuid4()}", headers=auth_headers(user_token))
        assert res.status_code == 404
        assert res.json()["error"] == {"code": "NOT_FOUND", "message": "Todo not found"}

    def test_invalid_todo_id(self, client, user_token):
        for method in ("get", "patch", "delete"):
            kwargs = {"headers": auth_headers(user_token)}
            if method == "patch":
                kwargs["json"] = {"completed": True}
            res = getattr(client, method)("/api/v1/todos/not-a-uuid", **kwargs)
            assert res.status_code == 400
            assert res.json()["error"] == {"code": "BAD_REQUEST", "message": "Invalid todo ID"}

    def test_patch_partial_update(self, client, user_token):
        created = create_todo(client, user_token, title="Partial", description="X")
        res = client.patch(
            f"/api/v1/todos/{created['id']}",
            json={"completed": True},
            headers=auth_headers(user_token),
        )
        assert res.status_code == 200
        patched = res.json()["data"]
        assert patched["completed"] is True
        assert patched["title"] == "Partial"
        assert patched["description"] == "X"
        assert patched["created_at"] == created["created_at"]
        assert patched["updated_at"] >= created["updated_at"]

    def test_patch_null_fields_keep_values(self, client, user_token):
        created = create_todo(client, user_token, title="Keep", description="Me")
        res = client.patch(
            f"/api/v1/todos/{created['id']}",
            json={"title": None, "description": None},
            headers=auth_headers(user_token),
        )
        assert res.status_code == 200
        patched = res.json()["data"]
        assert patched["title"] == "Keep"
        assert patched["description"] == "Me"

    def test_patch_validation(self, client, user_token):
        created = create_todo(client, user_token)
        res = client.patch(
            f"/api/v1/todos/{created['id']}",
            json={"title": "t" * 256, "completed": "yes"},
            headers=auth_headers(user_token),
        )
        assert res.status_code == 400
        error = res.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"] == [
            "title: must be at most 255 characters",
            "completed: must be a boolean",
        ]

    def test_patch_not_found(self, client, user_token):
        res = client.patch(
            f"/api/v1/todos/{uuid.uuid4()}",
            json={"title": "Nope"},
            headers=auth_headers(user_token),
        )
        assert res.status_code == 404

    def test_delete_todo(self, client, user_token):
        created = create_todo(client, user_token, title="ToDelete")
        res = client.delete(f"/api/v1/todos/{created['id']}", headers=auth_headers(user_token))
        assert res.status_code == 200
        assert res.json() == {"success": True, "data": {"message": "Todo deleted successfully"}}

        res_get = client.get(f"/api/v1/todos/{created['id']}", headers=auth_headers(user_token))
        assert res_get.status_code == 404
        res_again = client.delete(f"/api/v1/todos/{created['id']}", headers=auth_headers(user_token))
        assert res_again.status_code == 404


class TestListTodos:
    def test_empty_list_is_array(self, client, user_token):
        res = client.get("/api/v1/todos/", headers=auth_headers(user_token))
        assert res.status_code == 200
        assert res.json() == {"success": True, "data": []}

    def test_newest_first(self, client, user_token):
        ids = [create_todo(client, user_token, title=f"Task {i}")["id"] for i in range(5)]
        res = client.get("/api/v1/todos/", headers=auth_headers(user_token))
        items = res.json()["data"]
        assert [t["id"] for t in items] == list(reversed(ids))

    def test_filter_completed(self, client, user_token):
        first = create_todo(client, user_token, title="Done")
        create_todo(client, user_token, title="Open")
        client.patch(
            f"/api/v1/todos/{first['id']}",
            json={"completed": True},
            headers=auth_headers(user_token),
        )
        done = client.get("/api/v1/todos/?completed=true", headers=auth_headers(user_token)).json()["data"]
        open_ = client.get("/api/v1/todos/?completed=false", headers=auth_headers(user_token)).json()["data"]
        assert [t["title"] for t in done] == ["Done"]
        assert [t["title"] for t in open_] == ["Open"]

    def test_filter_must_be_boolean(self, client, user_token):
        res = client.get("/api/v1/todos/?completed=maybe", headers=auth_headers(user_token))
        assert res.status_code == 400
        error = res.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"] == ["completed: must be a boolean"]

    def test_requires_token(self, client):
        res = client.get("/api/v1/todos/")
        assert res.status_code == 401
        assert res.json()["success"] is False


class TestOwnership:
    def test_other_users_todo_is_forbidden_not_missing(self, client):
        register(client, email="alice@example.com")
        register(client, email="bob@example.com")
        alice = login(client, email="alice@example.com")["token"]
        bob = login(client, email="bob@example.com")["token"]

        todo = create_todo(client, alice, title="Alice only")

        for method in ("get", "patch", "delete"):
            kwargs = {"headers": auth_headers(bob)}
            if method == "patch":
                kwargs["json"] = {"title": "Hijacked"}
            res = getattr(client, method)(f"/api/v1/todos/{todo['id']}", **kwargs)
            assert res.status_code == 403
            assert res.json()["error"]["code"] == "FORBIDDEN"

        # Bob's list never contains Alice's items, and the todo is untouched.
        assert client.get("/api/v1/todos/", headers=auth_headers(bob)).json()["data"] == []
        res = client.get(f"/api/v1/todos/{todo['id']}", headers=auth_headers(alice))
        assert res.json()["data"]["title"] == "Alice only"


class TestEndToEnd:
    def test_full_flow(self, client):
        user = register(client, email="a@b.com", password="password123", name="A")
        token = login(client)["token"]
        headers = auth_headers(token)

        created = client.post("/api/v1/todos/", json={"title": "T1"}, headers=headers).json()["data"]
        assert created["user_id"] == user["id"]
        assert created["completed"] is False

        listed = client.get("/api/v1/todos/", headers=headers).json()["data"]
        assert [t["id"] for t in listed] == [created["id"]]

        patched = client.patch(
            f"/api/v1/todos/{created['id']}", json={"completed": True}, headers=headers
        ).json()["data"]
        assert patched["completed"] is True
        assert patched["title"] == "T1"

        deleted = client.delete(f"/api/v1/todos/{created['id']}", headers=headers)
        assert deleted.status_code == 200
        assert client.get(f"/api/v1/todos/{created['id']}", headers=headers).status_code == 404
