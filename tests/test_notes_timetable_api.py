"""Sticky notes and the weekly timetable."""

from httpx import AsyncClient


# =============================================================================
# NOTES
# =============================================================================


async def test_note_may_start_empty(client: AsyncClient, auth_headers):
    response = await client.post("/notes/", json={}, headers=auth_headers)

    assert response.status_code == 201
    assert response.json()["content"] == ""
    assert response.json()["pinned"] is False


async def test_autosave_updates_content(client: AsyncClient, auth_headers):
    note = (await client.post("/notes/", json={"content": "draft"}, headers=auth_headers)).json()

    response = await client.patch(
        f"/notes/{note['id']}", json={"content": "Revise <b>mitosis</b>"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["content"] == "Revise mitosis"


async def test_note_whitespace_survives_save_and_read(client: AsyncClient, auth_headers):
    body = "  - mitosis\n  - meiosis\n\n"
    note = (await client.post("/notes/", json={"content": body}, headers=auth_headers)).json()
    assert note["content"] == body

    fetched = (await client.get(f"/notes/{note['id']}", headers=auth_headers)).json()
    assert fetched["content"] == body


async def test_pinned_first_and_search(client: AsyncClient, auth_headers):
    await client.post("/notes/", json={"content": "Buy flashcards"}, headers=auth_headers)
    await client.post("/notes/", json={"content": "Exam on Friday", "pinned": True}, headers=auth_headers)

    notes = (await client.get("/notes/", headers=auth_headers)).json()
    assert [n["content"] for n in notes] == ["Exam on Friday", "Buy flashcards"]

    found = (await client.get("/notes/", params={"q": "FLASH"}, headers=auth_headers)).json()
    assert [n["content"] for n in found] == ["Buy flashcards"]


async def test_note_too_long(client: AsyncClient, auth_headers):
    response = await client.post("/notes/", json={"content": "x" * 50_001}, headers=auth_headers)
    assert response.status_code == 400


async def test_note_delete_and_isolation(client: AsyncClient, auth_headers, other_auth_headers):
    note = (await client.post("/notes/", json={"content": "private"}, headers=auth_headers)).json()

    assert (await client.get(f"/notes/{note['id']}", headers=other_auth_headers)).status_code == 404
    assert (await client.delete(f"/notes/{note['id']}", headers=auth_headers)).status_code == 204
    assert (await client.get("/notes/", headers=auth_headers)).json() == []


async def test_security_headers_on_responses(client: AsyncClient, auth_headers):
    response = await client.get("/notes/", headers=auth_headers)

    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "Content-Security-Policy" in response.headers


# =============================================================================
# TIMETABLE
# =============================================================================


def slot(day: str, start: str, end: str, title: str = "Algorithms") -> dict:
    return {"title": title, "day": day, "start_time": start, "end_time": end}


async def test_week_sorted_with_overlaps(client: AsyncClient, auth_headers):
    created = []
    for body in (
        slot("wednesday", "09:00", "10:30"),
        slot("monday", "14:00", "16:00", "Databases"),
        slot("monday", "15:00", "17:00", "Networks"),
        slot("monday", "08:00", "09:00", "Maths"),
    ):
        response = await client.post("/timetable/", json=body, headers=auth_headers)
        assert response.status_code == 201
        created.append(response.json())

    week = (await client.get("/timetable/", headers=auth_headers)).json()
    assert [(e["day"], e["start_time"]) for e in week["entries"]] == [
        ("monday", "08:00"),
        ("monday", "14:00"),
        ("monday", "15:00"),
        ("wednesday", "09:00"),
    ]
    assert sorted(week["overlapping_ids"]) == sorted([created[1]["id"], created[2]["id"]])


async def test_slot_rules_enforced_on_create(client: AsyncClient, auth_headers):
    for body in (
        slot("monday", "10:00", "09:00"),
        slot("monday", "09:00", "09:15"),
        slot("monday", "07:00", "08:00"),
        slot("monday", "9:00", "10:00"),
        slot("funday", "09:00", "10:00"),
    ):
        response = await client.post("/timetable/", json=body, headers=auth_headers)
        assert response.status_code == 400, body


async def test_update_checks_merged_slot(client: AsyncClient, auth_headers):
    entry = (await client.post("/timetable/", json=slot("tuesday", "09:00", "10:00"), headers=auth_headers)).json()

    bad = await client.patch(f"/timetable/{entry['id']}", json={"start_time": "09:45"}, headers=auth_headers)
    assert bad.status_code == 400
    assert "at least 30 minutes" in bad.json()["error"]

    good = await client.patch(
        f"/timetable/{entry['id']}", json={"end_time": "11:00", "day": "thursday"}, headers=auth_headers
    )
    assert good.status_code == 200
    assert good.json()["end_time"] == "11:00"
    assert good.json()["day"] == "thursday"


async def test_timetable_delete(client: AsyncClient, auth_headers, other_auth_headers):
    entry = (await client.post("/timetable/", json=slot("friday", "13:00", "14:00"), headers=auth_headers)).json()

    assert (await client.delete(f"/timetable/{entry['id']}", headers=other_auth_headers)).status_code == 404
    assert (await client.delete(f"/timetable/{entry['id']}", headers=auth_headers)).status_code == 204
    assert (await client.get("/timetable/", headers=auth_headers)).json()["entries"] == []
