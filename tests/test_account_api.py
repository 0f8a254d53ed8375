"""Account deletion removes everything the user owns."""

from datetime import datetime, timedelta, timezone

from httpx import AsyncClient
from sqlalchemy import func, select

from studyhub.db.models import OWNED_MODELS, User


async def owned_counts(db_session, user_id) -> dict[str, int]:
    counts = {}
    for model in OWNED_MODELS:
        result = await db_session.execute(
            select(func.count()).select_from(model).where(model.user_id == user_id)
        )
        counts[model.__tablename__] = result.scalar_one()
    return counts


async def fill_account(client: AsyncClient, headers: dict) -> None:
    due = (datetime.now(timezone.utc) + timedelta(days=2)).isoformat()
    await client.post("/tasks/", json={"title": "Essay", "due_date": due}, headers=headers)
    await client.post("/notes/", json={"content": "Bring calculator"}, headers=headers)
    await client.post(
        "/timetable/",
        json={"title": "Lab", "day": "monday", "start_time": "09:00", "end_time": "11:00"},
        headers=headers,
    )
    await client.post("/study-logs/", json={"topic": "Optics", "duration": 40, "productivity": 4}, headers=headers)
    resource = await client.post(
        "/resources/upload",
        data={"title": "Slides"},
        files={"file": ("slides.txt", b"Lens equations", "text/plain")},
        headers=headers,
    )
    await client.post("/bookmarks/", json={"resource_id": resource.json()["id"]}, headers=headers)
    await client.post(
        "/chat", json={"messages": [{"role": "user", "content": "What is refraction?"}]}, headers=headers
    )


async def test_delete_account_empties_owned_tables(
    client: AsyncClient, db_session, test_user, other_user, auth_headers, other_auth_headers, fake_storage, fake_llm
):
    await fill_account(client, auth_headers)
    await fill_account(client, other_auth_headers)
    assert all(count > 0 for count in (await owned_counts(db_session, test_user.id)).values())

    response = await client.delete("/auth/me", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"deleted": True, "failed_tables": []}
    assert "access_token" in response.headers.get("set-cookie", "")

    assert set((await owned_counts(db_session, test_user.id)).values()) == {0}
    assert (await db_session.execute(select(User).where(User.id == test_user.id))).first() is None

    # Another user's data is untouched
    assert all(count > 0 for count in (await owned_counts(db_session, other_user.id)).values())


async def test_deleted_account_token_stops_working(client: AsyncClient, auth_headers):
    await client.delete("/auth/me", headers=auth_headers)

    response = await client.get("/auth/me", headers=auth_headers)
    assert response.status_code == 401
