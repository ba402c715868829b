import pytest

DAY = "2026-10-05"


async def _assign(client, world, **periods):
    res = await client.put(f"/api/schedule/day/{DAY}", headers=world.admin.headers, json=periods)
    assert res.status_code == 200


async def _shift_id(client, member):
    res = await client.get("/api/me/calendar", params={"year": 2026, "month": 10}, headers=member.headers)
    shifts = res.json()["shifts"]
    assert len(shifts) == 1
    return shifts[0]["id"]


async def _offer(client, member, shift_id, target=None, reason="family event"):
    return await client.post(
        "/api/swaps",
        headers=member.headers,
        json={"from_shift_id": shift_id, "target_user_id": target, "reason": reason},
    )


@pytest.fixture
def alice_morning(client, world):
    async def make():
        await _assign(client, world, morning=[world.alice.user_id])
        return await _shift_id(client, world.alice)
    return make


@pytest.mark.asyncio
async def test_open_offer_accept_and_approve(client, world, alice_morning):
    shift_id = await alice_morning()
    await client.put(f"/api/availability/{DAY}", headers=world.bob.headers, json={"periods": ["morning", "night"]})

    created = await _offer(client, world.alice, shift_id)
    assert created.status_code == 201
    swap = created.json()
    assert swap["status"] == "pending"
    assert swap["target_user_id"] is None
    assert swap["requester_name"] == "Alice Adams"
    assert swap["shift"]["date"] == DAY

    received = await client.get("/api/me/swaps/received", headers=world.bob.headers)
    assert [r["id"] for r in received.json()["requests"]] == [swap["id"]]
    # the requester doesn't see her own offer as incoming
    assert (await client.get("/api/me/swaps/received", headers=world.alice.headers)).json()["total"] == 0

    accepted = await client.post(f"/api/swaps/{swap['id']}/accept", headers=world.bob.headers)
    assert accepted.status_code == 200
    assert accepted.json()["target_user_id"] == world.bob.user_id
    assert accepted.json()["status"] == "pending"

    approved = await client.post(f"/api/swaps/{swap['id']}/approve", headers=world.coordinator.headers)
    assert approved.status_code == 200
    body = approved.json()
    assert body["status"] == "approved"
    assert body["handled_by_user_id"] == world.coordinator.user_id
    assert body["handled_at"] is not None
    assert body["shift"]["doctor_user_id"] == world.bob.user_id

    # the shift moved and bob is no longer announced as available that day
    assert await _shift_id(client, world.bob) == shift_id
    bob_day = await client.get("/api/availability", params={"date": DAY}, headers=world.bob.headers)
    assert bob_day.json()["periods"] == []

    sent = await client.get("/api/me/swaps/sent", headers=world.alice.headers)
    assert sent.json()["requests"][0]["status"] == "approved"


@pytest.mark.asyncio
async def test_terminal_requests_accept_nothing(client, world, alice_morning):
    shift_id = await alice_morning()
    swap = (await _offer(client, world.alice, shift_id, target=world.bob.user_id)).json()
    await client.post(f"/api/swaps/{swap['id']}/approve", headers=world.admin.headers)

    attempts = [
        client.post(f"/api/swaps/{swap['id']}/accept", headers=world.carol.headers),
        client.post(f"/api/swaps/{swap['id']}/decline", headers=world.bob.headers),
        client.post(f"/api/swaps/{swap['id']}/cancel", headers=world.alice.headers),
        client.post(f"/api/swaps/{swap['id']}/reject", headers=world.admin.headers),
        client.post(f"/api/swaps/{swap['id']}/approve", headers=world.admin.headers),
        client.patch(f"/api/swaps/{swap['id']}/target", headers=world.admin.headers, json={"target_user_id": world.carol.user_id}),
    ]
    for attempt in attempts:
        res = await attempt
        assert res.status_code == 409
        assert "is approved" in res.json()["detail"]

    final = await client.get(f"/api/swaps/{swap['id']}", headers=world.admin.headers)
    assert final.json()["target_user_id"] == world.bob.user_id
    assert final.json()["status"] == "approved"


@pytest.mark.asyncio
async def test_conflicting_approval_changes_nothing(client, world):
    await _assign(client, world, morning=[world.alice.user_id, world.bob.user_id])
    res = await client.get("/api/me/calendar", params={"year": 2026, "month": 10}, headers=world.alice.headers)
    shift_id = res.json()["shifts"][0]["id"]
    await client.put(f"/api/availability/{DAY}", headers=world.bob.headers, json={"periods": ["night"]})

    swap = (await _offer(client, world.alice, shift_id, target=world.bob.user_id)).json()
    res = await client.post(f"/api/swaps/{swap['id']}/approve", headers=world.admin.headers)
    assert res.status_code == 409
    assert res.json()["detail"] == "Doctor already on duty in this period"

    after = await client.get(f"/api/swaps/{swap['id']}", headers=world.admin.headers)
    assert after.json()["status"] == "pending"
    assert after.json()["handled_at"] is None
    assert after.json()["shift"]["doctor_user_id"] == world.alice.user_id
    bob_day = await client.get("/api/availability", params={"date": DAY}, headers=world.bob.headers)
    assert bob_day.json()["periods"] == ["night"]


@pytest.mark.asyncio
async def test_approve_needs_a_target(client, world, alice_morning):
    shift_id = await alice_morning()
    swap = (await _offer(client, world.alice, shift_id)).json()

    missing = await client.post(f"/api/swaps/{swap['id']}/approve", headers=world.admin.headers)
    assert missing.status_code == 422

    chosen = await client.post(
        f"/api/swaps/{swap['id']}/approve", headers=world.admin.headers, json={"target_user_id": world.carol.user_id}
    )
    assert chosen.status_code == 200
    assert chosen.json()["target_user_id"] == world.carol.user_id


@pytest.mark.asyncio
async def test_decline_only_by_addressed_doctor(client, world, alice_morning):
    shift_id = await alice_morning()
    swap = (await _offer(client, world.alice, shift_id, target=world.bob.user_id)).json()

    carol = await client.post(f"/api/swaps/{swap['id']}/decline", headers=world.carol.headers)
    assert carol.status_code == 403
    carol_accept = await client.post(f"/api/swaps/{swap['id']}/accept", headers=world.carol.headers)
    assert carol_accept.status_code == 403

    declined = await client.post(f"/api/swaps/{swap['id']}/decline", headers=world.bob.headers)
    assert declined.status_code == 200
    assert declined.json()["status"] == "rejected"
    assert declined.json()["handled_by_user_id"] == world.bob.user_id


@pytest.mark.asyncio
async def test_cancel_only_by_requester(client, world, alice_morning):
    shift_id = await alice_morning()
    swap = (await _offer(client, world.alice, shift_id)).json()

    assert (await client.post(f"/api/swaps/{swap['id']}/cancel", headers=world.bob.headers)).status_code == 403

    cancelled = await client.post(f"/api/swaps/{swap['id']}/cancel", headers=world.alice.headers)
    assert cancelled.json()["status"] == "cancelled"

    # the shift can be offered again once the old request is closed
    again = await _offer(client, world.alice, shift_id)
    assert again.status_code == 201


@pytest.mark.asyncio
async def test_create_validation(client, world, alice_morning):
    shift_id = await alice_morning()

    assert (await _offer(client, world.bob, shift_id)).status_code == 403
    assert (await _offer(client, world.alice, shift_id, target=world.alice.user_id)).status_code == 422
    assert (await _offer(client, world.alice, shift_id, target=world.outsider.user_id)).status_code == 422
    assert (await _offer(client, world.alice, 9999)).status_code == 404

    assert (await _offer(client, world.alice, shift_id)).status_code == 201
    assert (await _offer(client, world.alice, shift_id)).status_code == 409


@pytest.mark.asyncio
async def test_manager_list_and_retarget(client, world, alice_morning):
    shift_id = await alice_morning()
    swap = (await _offer(client, world.alice, shift_id, target=world.bob.user_id)).json()

    listing = await client.get("/api/swaps", headers=world.coordinator.headers)
    assert listing.status_code == 200
    assert listing.json()["total"] == 1

    assert (await client.get("/api/swaps", headers=world.alice.headers)).status_code == 403
    assert (await client.get("/api/swaps", params={"status": "weird"}, headers=world.admin.headers)).status_code == 422

    moved = await client.patch(
        f"/api/swaps/{swap['id']}/target", headers=world.admin.headers, json={"target_user_id": world.carol.user_id}
    )
    assert moved.json()["target_name"] == "Carol Clark"

    rejected = await client.post(f"/api/swaps/{swap['id']}/reject", headers=world.admin.headers)
    assert rejected.json()["status"] == "rejected"

    assert (await client.get("/api/swaps", headers=world.admin.headers)).json()["total"] == 0
    closed = await client.get("/api/swaps", params={"status": "rejected"}, headers=world.admin.headers)
    assert closed.json()["total"] == 1
    assert (await client.get("/api/swaps", params={"status": "all"}, headers=world.admin.headers)).json()["total"] == 1


@pytest.mark.asyncio
async def test_request_visibility(client, world, alice_morning):
    shift_id = await alice_morning()
    swap = (await _offer(client, world.alice, shift_id, target=world.bob.user_id)).json()

    assert (await client.get(f"/api/swaps/{swap['id']}", headers=world.bob.headers)).status_code == 200
    assert (await client.get(f"/api/swaps/{swap['id']}", headers=world.carol.headers)).status_code == 403
    assert (await client.get(f"/api/swaps/{swap['id']}", headers=world.outsider.headers)).status_code == 404


@pytest.mark.asyncio
async def test_deleted_shift_cannot_be_approved(client, world, alice_morning):
    shift_id = await alice_morning()
    swap = (await _offer(client, world.alice, shift_id, target=world.bob.user_id)).json()

    await client.delete(f"/api/schedule/day/{DAY}", headers=world.admin.headers)

    orphan = await client.get(f"/api/swaps/{swap['id']}", headers=world.admin.headers)
    assert orphan.json()["from_shift_id"] is None
    assert orphan.json()["shift"] is None

    res = await client.post(f"/api/swaps/{swap['id']}/approve", headers=world.admin.headers)
    assert res.status_code == 409
