"""Task CRUD and list views."""

from datetime import datetime, timedelta, timezone

from httpx import AsyncClient


def due(days: float = 0) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


async def test_create_then_list_returns_same_fields(client: AsyncClient, auth_headers, test_user):
    response = await client.post(
        "/tasks/",
        json={"title": "Lab report", "due_date": due(3), "priority": "high"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "pending"
    assert created["priority"] == "high"
    assert created["user_id"] == str(test_user.id)

    listed = await client.get("/tasks/", headers=auth_headers)
    assert listed.status_code == 200
    assert listed.json() == [created]


async def test_list_sorted_by_due_date(client: AsyncClient, auth_headers):
    for title, days in (("Later", 5), ("Sooner", 1), ("Middle", 3)):
        await client.post("/tasks/", json={"title": title, "due_date": due(days)}, headers=auth_headers)

    titles = [t["title"] for t in (await client.get("/tasks/", headers=auth_headers)).json()]
    assert titles == ["Sooner", "Middle", "Later"]


async def test_title_is_sanitized_and_validated(client: AsyncClient, auth_headers):
    response = await client.post(
        "/tasks/", json={"title": "<script>x</script>Essay", "due_date": due(1)}, headers=auth_headers
    )
    assert response.json()["title"] == "Essay"

    empty = await client.post("/tasks/", json={"title": "<b></b>", "due_date": due(1)}, headers=auth_headers)
    assert empty.status_code == 400
    assert "title is invalid" in empty.json()["errors"]


async def test_invalid_priority_rejected(client: AsyncClient, auth_headers):
    response = await client.post(
        "/tasks/", json={"title": "Essay", "due_date": due(1), "priority": "urgent"}, headers=auth_headers
    )
    assert response.status_code == 400


async def test_update_any_status_transition(client: AsyncClient, auth_headers):
    task = (await client.post("/tasks/", json={"title": "Essay", "due_date": due(1)}, headers=auth_headers)).json()

    for status in ("completed", "pending", "in_progress"):
        response = await client.patch(f"/tasks/{task['id']}", json={"status": status}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == status
        assert response.json()["title"] == "Essay"


async def test_views_and_summary(client: AsyncClient, auth_headers):
    await client.post("/tasks/", json={"title": "Today", "due_date": due(0)}, headers=auth_headers)
    await client.post("/tasks/", json={"title": "Late", "due_date": due(-3)}, headers=auth_headers)
    await client.post(
        "/tasks/", json={"title": "Done late", "due_date": due(-3), "status": "completed"}, headers=auth_headers
    )

    overdue = await client.get("/tasks/", params={"view": "overdue"}, headers=auth_headers)
    assert [t["title"] for t in overdue.json()] == ["Late"]

    today = await client.get("/tasks/", params={"view": "due_today"}, headers=auth_headers)
    assert [t["title"] for t in today.json()] == ["Today"]

    summary = (await client.get("/tasks/summary", headers=auth_headers)).json()
    assert summary["all"] == 3
    assert summary["overdue"] == 1
    assert summary["completed"] == 1

    bad_view = await client.get("/tasks/", params={"view": "someday"}, headers=auth_headers)
    assert bad_view.status_code == 400


async def test_delete(client: AsyncClient, auth_headers):
    task = (await client.post("/tasks/", json={"title": "Essay", "due_date": due(1)}, headers=auth_headers)).json()

    assert (await client.delete(f"/tasks/{task['id']}", headers=auth_headers)).status_code == 204
    assert (await client.get(f"/tasks/{task['id']}", headers=auth_headers)).status_code == 404


async def test_other_users_tasks_are_invisible(client: AsyncClient, auth_headers, other_auth_headers):
    task = (await client.post("/tasks/", json={"title": "Mine", "due_date": due(1)}, headers=auth_headers)).json()

    assert (await client.get(f"/tasks/{task['id']}", headers=other_auth_headers)).status_code == 404
    assert (
        await client.patch(f"/tasks/{task['id']}", json={"title": "Theirs"}, headers=other_auth_headers)
    ).status_code == 404
    assert (await client.delete(f"/tasks/{task['id']}", headers=other_auth_headers)).status_code == 404
    assert (await client.get("/tasks/", headers=other_auth_headers)).json() == []


async def test_requires_auth(client: AsyncClient, db_session):
    assert (await client.get("/tasks/")).status_code == 401
