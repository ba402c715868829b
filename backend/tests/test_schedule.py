import pytest
from sqlalchemy import func, select

from shiftdesk.database import async_session
from shiftdesk.models import Shift


async def _save_day(client, headers, day, **periods):
    return await client.put(f"/api/schedule/day/{day}", headers=headers, json=periods)


async def _count_rows(hospital_id, day=None):
    async with async_session() as session:
        query = select(func.count(Shift.id)).where(Shift.hospital_id == hospital_id)
        if day is not None:
            query = query.where(Shift.date == day)
        return await session.scalar(query)


@pytest.mark.asyncio
async def test_save_day_and_read_it_back(client, world):
    res = await _save_day(
        client,
        world.coordinator.headers,
        "2026-10-05",
        morning=[world.alice.user_id, world.bob.user_id],
        night=[world.carol.user_id],
        afternoon=[""],
    )
    assert res.status_code == 200
    assert res.json() == {"day": "2026-10-05", "deleted": 0, "inserted": 3}

    day = await client.get("/api/schedule/day/2026-10-05", headers=world.alice.headers)
    assert day.status_code == 200
    slots = {s["period"]: s for s in day.json()["slots"]}
    assert {d["id"] for d in slots["morning"]["doctors"]} == {world.alice.user_id, world.bob.user_id}
    assert slots["night"]["capacity"] == 3
    assert slots["full_day"]["short"] == "24H"
    assert slots["afternoon"]["doctors"] == []
    # every roster member can be picked
    assert len(day.json()["doctors"]) == 5


@pytest.mark.asyncio
async def test_save_day_replaces_previous_rows(client, world):
    await _save_day(client, world.admin.headers, "2026-10-05", morning=[world.alice.user_id, world.bob.user_id])
    res = await _save_day(client, world.admin.headers, "2026-10-05", full_day=[world.carol.user_id])

    assert res.json()["deleted"] == 2
    assert res.json()["inserted"] == 1
    assert await _count_rows(world.hospital_id, day=None) == 1


@pytest.mark.asyncio
async def test_month_counts_match_rows(client, world):
    await _save_day(client, world.admin.headers, "2026-10-05", morning=[world.alice.user_id, world.bob.user_id])
    await _save_day(
        client,
        world.admin.headers,
        "2026-10-06",
        night=[world.alice.user_id, world.bob.user_id, world.carol.user_id],
    )

    res = await client.get("/api/schedule/month", params={"year": 2026, "month": 10}, headers=world.bob.headers)
    assert res.status_code == 200
    body = res.json()
    assert body["weeks"][0] == [None, None, None, None, 1, 2, 3]
    assert len(body["days"]) == 31

    days = {d["date"]: d for d in body["days"]}
    oct5 = {c["period"]: c for c in days["2026-10-05"]["counts"]}
    oct6 = {c["period"]: c for c in days["2026-10-06"]["counts"]}
    assert oct5["morning"]["count"] == 2
    assert oct5["morning"]["status"] == "partial"
    assert oct6["night"] == {"period": "night", "count": 3, "capacity": 3, "status": "full"}
    assert all(c["count"] == 0 for c in days["2026-10-07"]["counts"])

    total = sum(c["count"] for d in body["days"] for c in d["counts"])
    assert total == await _count_rows(world.hospital_id) == 5


@pytest.mark.asyncio
async def test_save_day_validation(client, world):
    too_many = await _save_day(
        client,
        world.admin.headers,
        "2026-10-05",
        night=[world.admin.user_id, world.coordinator.user_id, world.alice.user_id, world.bob.user_id],
    )
    assert too_many.status_code == 422

    twice = await _save_day(client, world.admin.headers, "2026-10-05", morning=[world.alice.user_id, world.alice.user_id])
    assert twice.status_code == 422

    stranger = await _save_day(client, world.admin.headers, "2026-10-05", morning=[world.outsider.user_id])
    assert stranger.status_code == 422

    assert await _count_rows(world.hospital_id) == 0


@pytest.mark.asyncio
async def test_doctor_cannot_edit_schedule(client, world):
    res = await _save_day(client, world.alice.headers, "2026-10-05", morning=[world.alice.user_id])
    assert res.status_code == 403
    assert (await client.delete("/api/schedule/day/2026-10-05", headers=world.alice.headers)).status_code == 403


@pytest.mark.asyncio
async def test_clear_then_save_empty_leaves_nothing(client, world):
    await _save_day(client, world.admin.headers, "2026-10-05", morning=[world.alice.user_id], night=[world.bob.user_id])

    cleared = await client.delete("/api/schedule/day/2026-10-05", headers=world.admin.headers)
    assert cleared.json()["deleted"] == 2

    empty = await _save_day(client, world.admin.headers, "2026-10-05")
    assert empty.json() == {"day": "2026-10-05", "deleted": 0, "inserted": 0}
    assert await _count_rows(world.hospital_id, day=None) == 0


@pytest.mark.asyncio
async def test_copy_day(client, world):
    await _save_day(client, world.admin.headers, "2026-10-05", morning=[world.alice.user_id], night=[world.bob.user_id])
    await _save_day(client, world.admin.headers, "2026-10-09", afternoon=[world.carol.user_id])

    res = await client.post(
        "/api/schedule/day/2026-10-05/copy", headers=world.admin.headers, json={"target_date": "2026-10-09"}
    )
    assert res.status_code == 200
    assert res.json()["deleted"] == 1
    assert res.json()["inserted"] == 2

    day = await client.get("/api/schedule/day/2026-10-09", headers=world.admin.headers)
    slots = {s["period"]: [d["id"] for d in s["doctors"]] for s in day.json()["slots"]}
    assert slots == {
        "morning": [world.alice.user_id],
        "afternoon": [],
        "night": [world.bob.user_id],
        "full_day": [],
    }

    same = await client.post(
        "/api/schedule/day/2026-10-05/copy", headers=world.admin.headers, json={"target_date": "2026-10-05"}
    )
    assert same.status_code == 422


@pytest.mark.asyncio
async def test_copy_month_drops_missing_days(client, world):
    for day in ("2026-01-01", "2026-01-28", "2026-01-29", "2026-01-31"):
        await _save_day(client, world.admin.headers, day, morning=[world.alice.user_id])
    await _save_day(client, world.admin.headers, "2026-02-10", night=[world.bob.user_id])

    res = await client.post(
        "/api/schedule/month/copy",
        headers=world.admin.headers,
        json={"source_year": 2026, "source_month": 1, "target_year": 2026, "target_month": 2},
    )
    assert res.status_code == 200
    assert res.json() == {"target_year": 2026, "target_month": 2, "deleted": 1, "copied": 2, "skipped": 2}

    month = await client.get("/api/schedule/month", params={"year": 2026, "month": 2}, headers=world.admin.headers)
    filled = [d["date"] for d in month.json()["days"] if d["shifts"]]
    assert filled == ["2026-02-01", "2026-02-28"]

    # source month untouched
    assert await _count_rows(world.hospital_id) == 6


@pytest.mark.asyncio
async def test_copy_month_to_same_month_is_rejected(client, world):
    res = await client.post(
        "/api/schedule/month/copy",
        headers=world.admin.headers,
        json={"source_year": 2026, "source_month": 1, "target_year": 2026, "target_month": 1},
    )
    assert res.status_code == 422


@pytest.mark.asyncio
async def test_copy_month_leaves_out_removed_doctors(client, world):
    await _save_day(client, world.admin.headers, "2026-01-10", morning=[world.alice.user_id, world.carol.user_id])
    await client.delete(f"/api/roster/{world.carol.membership_id}", headers=world.admin.headers)

    res = await client.post(
        "/api/schedule/month/copy",
        headers=world.admin.headers,
        json={"source_year": 2026, "source_month": 1, "target_year": 2026, "target_month": 2},
    )
    assert res.status_code == 200
    assert res.json()["copied"] == 1
    assert res.json()["skipped"] == 1

    day = await client.get("/api/schedule/day/2026-02-10", headers=world.admin.headers)
    morning = next(s for s in day.json()["slots"] if s["period"] == "morning")
    assert [d["id"] for d in morning["doctors"]] == [world.alice.user_id]
