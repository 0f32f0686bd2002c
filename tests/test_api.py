from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, update

from app.models.group_invitation import GroupInvitation


def today():
    return datetime.now(timezone.utc).isoformat()


async def create_group(client, headers, name="Trip"):
    res = await client.post("/api/v1/groups/", json={"name": name}, headers=headers)
    assert res.status_code == 201
    return res.json()


async def send_invite(client, group_id, owner_headers, user):
    res = await client.post(
        f"/api/v1/groups/{group_id}/invites",
        json={"email": user.email},
        headers=owner_headers,
    )
    assert res.status_code == 201


async def accept_latest_invite(client, session_factory, email, headers):
    async with session_factory() as session:
        token = await session.scalar(
            select(GroupInvitation.token)
            .where(GroupInvitation.email == email)
            .order_by(GroupInvitation.id.desc())
        )

    return await client.post("/api/v1/groups/invites/accept", params={"token": token}, headers=headers)


@pytest.fixture
async def trip(client, session_factory, make_user):
    """Alice owns a group, Bob joined through an invite."""
    alice, alice_h = await make_user("Alice")
    bob, bob_h = await make_user("Bob")

    group = await create_group(client, alice_h)
    await send_invite(client, group["id"], alice_h, bob)
    res = await accept_latest_invite(client, session_factory, bob.email, bob_h)
    assert res.json() == {"status": "joined", "group_id": group["id"]}

    return {
        "group": group,
        "alice": alice,
        "alice_h": alice_h,
        "bob": bob,
        "bob_h": bob_h,
    }


async def test_register_and_login_sets_cookies(client):
    res = await client.post("/api/v1/users/register", json={
        "name": "Dana",
        "email": "Dana@Example.com",
        "password": "supersecret",
    })
    assert res.status_code == 201
    assert res.json()["email"] == "dana@example.com"

    dup = await client.post("/api/v1/users/register", json={
        "name": "Dana",
        "email": "dana@example.com",
        "password": "supersecret",
    })
    assert dup.status_code == 409

    bad = await client.post("/api/v1/users/login", json={"email": "dana@example.com", "password": "nope"})
    assert bad.status_code == 401

    ok = await client.post("/api/v1/users/login", json={"email": "dana@example.com", "password": "supersecret"})
    assert ok.status_code == 200
    set_cookie = ",".join(ok.headers.get_list("set-cookie"))
    assert "access_token=" in set_cookie
    assert "refresh_token=" in set_cookie


async def test_requests_without_token_are_rejected(client):
    res = await client.get("/api/v1/settlements/")
    assert res.status_code == 401


async def test_me_with_bearer_token(client, make_user):
    user, headers = await make_user("Erin")
    res = await client.get("/api/v1/users/me", headers=headers)

    assert res.status_code == 200
    assert res.json()["id"] == user.id


async def test_search_users_excludes_self(client, make_user):
    _, headers = await make_user("Frank")
    await make_user("Frankie")
    await make_user("Zed")

    res = await client.get("/api/v1/users/search", params={"q": "fra"}, headers=headers)
    assert [u["name"] for u in res.json()] == ["Frankie"]

    short = await client.get("/api/v1/users/search", params={"q": "f"}, headers=headers)
    assert short.json() == []


async def test_group_listing_includes_members(client, trip):
    res = await client.get("/api/v1/groups/", headers=trip["bob_h"])
    assert res.status_code == 200

    [group] = res.json()
    assert group["id"] == trip["group"]["id"]
    assert sorted(m["name"] for m in group["members"]) == ["Alice", "Bob"]
    assert group["counts"] == {"expenses": 0, "settlements": 0}


async def test_non_member_cannot_see_group(client, trip, make_user):
    _, eve_h = await make_user("Eve")

    res = await client.get(f"/api/v1/groups/{trip['group']['id']}", headers=eve_h)
    assert res.status_code == 403

    missing = await client.get("/api/v1/groups/9999", headers=eve_h)
    assert missing.status_code == 404


async def test_duplicate_and_member_invites_rejected(client, trip, make_user):
    gid = trip["group"]["id"]

    again = await client.post(
        f"/api/v1/groups/{gid}/invites", json={"email": trip["bob"].email}, headers=trip["alice_h"]
    )
    assert again.status_code == 400

    first = await client.post(
        f"/api/v1/groups/{gid}/invites", json={"email": "new@example.com"}, headers=trip["alice_h"]
    )
    assert first.status_code == 201

    second = await client.post(
        f"/api/v1/groups/{gid}/invites", json={"email": "new@example.com"}, headers=trip["alice_h"]
    )
    assert second.status_code == 400


async def test_invite_for_someone_else_is_refused(client, trip, session_factory, make_user):
    gid = trip["group"]["id"]
    _, mallory_h = await make_user("Mallory")

    await client.post(f"/api/v1/groups/{gid}/invites", json={"email": "carol@example.com"}, headers=trip["alice_h"])
    res = await accept_latest_invite(client, session_factory, "carol@example.com", mallory_h)

    assert res.status_code == 403


async def test_expired_invite(client, trip, session_factory, make_user):
    gid = trip["group"]["id"]
    carol, carol_h = await make_user("Carol")

    await client.post(f"/api/v1/groups/{gid}/invites", json={"email": carol.email}, headers=trip["alice_h"])

    async with session_factory() as session:
        await session.execute(
            update(GroupInvitation)
            .where(GroupInvitation.email == carol.email)
            .values(expires_at=datetime.now(timezone.utc) - timedelta(days=1))
        )
        await session.commit()

    res = await accept_latest_invite(client, session_factory, carol.email, carol_h)
    assert res.status_code == 410


async def test_settlement_flow(client, trip):
    gid = trip["group"]["id"]
    alice, bob = trip["alice"], trip["bob"]

    res = await client.post(f"/api/v1/expenses/groups/{gid}", json={
        "description": "Hotel",
        "amount": "100",
        "date": today(),
        "paid_by": alice.id,
    }, headers=trip["alice_h"])
    assert res.status_code == 201
    assert sorted((s["user_id"], s["amount_owed"]) for s in res.json()["splits"]) == [
        (alice.id, 50.0),
        (bob.id, 50.0),
    ]

    overview = (await client.get("/api/v1/settlements/", headers=trip["alice_h"])).json()
    assert [(d["user_id"], d["net_amount"]) for d in overview["debt_summaries"]] == [(bob.id, 50.0)]
    assert overview["total_owed_to_me"] == 50.0
    assert overview["total_i_owe_people"] == 0.0
    assert overview["net_balance"] == 50.0

    bob_view = (await client.get("/api/v1/settlements/", headers=trip["bob_h"])).json()
    [debt] = bob_view["debt_summaries"]
    assert debt["user_id"] == alice.id
    assert debt["net_amount"] == -50.0
    assert debt["total_owing"] == 50.0
    assert debt["group_name"] == "Trip"
    assert bob_view["net_balance"] == -50.0

    paid = await client.post("/api/v1/settlements/", json={
        "group_id": gid,
        "paid_by": alice.id,
        "received_by": bob.id,
        "amount": "50",
    }, headers=trip["alice_h"])
    assert paid.status_code == 201

    for headers in (trip["alice_h"], trip["bob_h"]):
        view = (await client.get("/api/v1/settlements/", headers=headers)).json()
        assert view["debt_summaries"] == []
        assert view["net_balance"] == 0.0
        assert len(view["settlements"]) == 1

    balances = (await client.get(f"/api/v1/settlements/groups/{gid}/balances", headers=trip["alice_h"])).json()
    assert {b["user_id"]: b["balance"] for b in balances["balances"]} == {alice.id: 0.0, bob.id: 0.0}


async def test_undo_settlement_restores_debt(client, trip):
    gid = trip["group"]["id"]
    alice, bob = trip["alice"], trip["bob"]

    await client.post(f"/api/v1/expenses/groups/{gid}", json={
        "description": "Taxi",
        "amount": "30",
        "date": today(),
        "paid_by": bob.id,
    }, headers=trip["bob_h"])

    paid = await client.post("/api/v1/settlements/", json={
        "group_id": gid,
        "paid_by": alice.id,
        "received_by": bob.id,
        "amount": "15",
    }, headers=trip["alice_h"])
    settlement_id = paid.json()["id"]

    view = (await client.get("/api/v1/settlements/", headers=trip["alice_h"])).json()
    assert [(d["user_id"], d["net_amount"]) for d in view["debt_summaries"]] == [(bob.id, -30.0)]

    forbidden = await client.delete(f"/api/v1/settlements/{settlement_id}", headers=trip["bob_h"])
    assert forbidden.status_code == 403

    undone = await client.delete(f"/api/v1/settlements/{settlement_id}", headers=trip["alice_h"])
    assert undone.status_code == 200

    view = (await client.get("/api/v1/settlements/", headers=trip["alice_h"])).json()
    assert [(d["user_id"], d["net_amount"]) for d in view["debt_summaries"]] == [(bob.id, -15.0)]


async def test_settlement_with_outsider_rejected(client, trip, make_user):
    eve, _ = await make_user("Eve")

    res = await client.post("/api/v1/settlements/", json={
        "group_id": trip["group"]["id"],
        "paid_by": eve.id,
        "received_by": trip["alice"].id,
        "amount": "10",
    }, headers=trip["alice_h"])

    assert res.status_code == 400


async def test_settlement_to_self_rejected(client, trip):
    res = await client.post("/api/v1/settlements/", json={
        "group_id": trip["group"]["id"],
        "paid_by": trip["alice"].id,
        "received_by": trip["alice"].id,
        "amount": "10",
    }, headers=trip["alice_h"])

    assert res.status_code == 422


async def test_percentage_split_expense(client, trip):
    gid = trip["group"]["id"]
    alice, bob = trip["alice"], trip["bob"]

    res = await client.post(f"/api/v1/expenses/groups/{gid}", json={
        "description": "Groceries",
        "amount": "80",
        "date": today(),
        "paid_by": bob.id,
        "split_type": "PERCENTAGE",
        "splits": [
            {"user_id": alice.id, "percentage": "25"},
            {"user_id": bob.id, "percentage": "75"},
        ],
    }, headers=trip["alice_h"])

    assert res.status_code == 201
    body = res.json()
    assert body["split_type"] == "PERCENTAGE"
    assert body["created_by"] == alice.id
    assert {s["user_id"]: s["amount_owed"] for s in body["splits"]} == {alice.id: 20.0, bob.id: 60.0}


async def test_custom_splits_must_cover_every_member(client, trip):
    gid = trip["group"]["id"]

    res = await client.post(f"/api/v1/expenses/groups/{gid}", json={
        "description": "Museum",
        "amount": "40",
        "date": today(),
        "paid_by": trip["alice"].id,
        "split_type": "UNEQUAL",
        "splits": [{"user_id": trip["alice"].id, "amount_owed": "40"}],
    }, headers=trip["alice_h"])

    assert res.status_code == 400
    assert res.json()["detail"] == "Splits must include all group members"


async def test_unequal_split_total_mismatch(client, trip):
    gid = trip["group"]["id"]

    res = await client.post(f"/api/v1/expenses/groups/{gid}", json={
        "description": "Boat",
        "amount": "40",
        "date": today(),
        "paid_by": trip["alice"].id,
        "split_type": "UNEQUAL",
        "splits": [
            {"user_id": trip["alice"].id, "amount_owed": "10"},
            {"user_id": trip["bob"].id, "amount_owed": "10"},
        ],
    }, headers=trip["alice_h"])

    assert res.status_code == 400


async def test_personal_expense_and_filters(client, trip):
    res = await client.post("/api/v1/expenses/", json={
        "description": "Coffee",
        "amount": "3.50",
        "category": "Food",
        "date": today(),
    }, headers=trip["alice_h"])
    assert res.status_code == 201
    assert res.json()["group_id"] is None
    assert res.json()["splits"] == [{"user_id": trip["alice"].id, "amount_owed": 3.5}]

    await client.post(f"/api/v1/expenses/groups/{trip['group']['id']}", json={
        "description": "Dinner",
        "amount": "60",
        "date": today(),
        "paid_by": trip["bob"].id,
    }, headers=trip["bob_h"])

    personal = (await client.get("/api/v1/expenses/", params={"type": "personal"}, headers=trip["alice_h"])).json()
    group = (await client.get("/api/v1/expenses/", params={"type": "group"}, headers=trip["alice_h"])).json()
    everything = (await client.get("/api/v1/expenses/", headers=trip["alice_h"])).json()

    assert [e["description"] for e in personal] == ["Coffee"]
    assert [e["description"] for e in group] == ["Dinner"]
    assert len(everything) == 2


async def test_delete_expense_only_by_payer_or_creator(client, trip, make_user):
    res = await client.post(f"/api/v1/expenses/groups/{trip['group']['id']}", json={
        "description": "Snacks",
        "amount": "12",
        "date": today(),
        "paid_by": trip["alice"].id,
    }, headers=trip["alice_h"])
    expense_id = res.json()["id"]

    _, eve_h = await make_user("Eve")
    assert (await client.delete(f"/api/v1/expenses/{expense_id}", headers=eve_h)).status_code == 403
    assert (await client.delete(f"/api/v1/expenses/{expense_id}", headers=trip["alice_h"])).status_code == 200

    view = (await client.get("/api/v1/settlements/", headers=trip["alice_h"])).json()
    assert view["debt_summaries"] == []


async def test_dashboard_stats(client, trip):
    gid = trip["group"]["id"]

    await client.post(f"/api/v1/expenses/groups/{gid}", json={
        "description": "Hotel",
        "amount": "100",
        "category": "Lodging",
        "date": today(),
        "paid_by": trip["alice"].id,
    }, headers=trip["alice_h"])
    await client.post("/api/v1/expenses/", json={
        "description": "Coffee",
        "amount": "4",
        "date": today(),
    }, headers=trip["alice_h"])

    stats = (await client.get("/api/v1/dashboard/stats", headers=trip["alice_h"])).json()

    assert stats["total_stats"] == {
        "total_groups": 1,
        "total_expenses": 2,
        "total_amount_paid": 104.0,
        "total_amount_owed": 54.0,
        "net_balance": 50.0,
    }
    assert {c["category"]: c["amount"] for c in stats["expenses_by_category"]} == {"Lodging": 100.0, "Other": 4.0}
    assert sum(m["amount"] for m in stats["expenses_by_month"]) == 104.0
    assert stats["group_activity"] == [
        {"name": "Trip", "expenses": 1, "members": 2, "settlements": 0, "total_amount": 100.0}
    ]
    assert {r["group_name"] for r in stats["recent_expenses"]} == {"Trip", "Personal"}
    assert stats["balance_data"] == [
        {"group_name": "Trip", "owed_to_user": 50.0, "user_owes": 0.0, "net_balance": 50.0}
    ]


async def test_only_creator_can_delete_group(client, trip):
    gid = trip["group"]["id"]

    assert (await client.delete(f"/api/v1/groups/{gid}", headers=trip["bob_h"])).status_code == 403
    assert (await client.delete(f"/api/v1/groups/{gid}", headers=trip["alice_h"])).status_code == 200
    assert (await client.get("/api/v1/groups/", headers=trip["bob_h"])).json() == []


async def test_system_metrics_count_rows(client, trip):
    await client.post("/api/v1/expenses/", json={
        "description": "Lunch",
        "amount": "12.50",
        "date": today(),
    }, headers=trip["alice_h"])

    assert (await client.get("/api/v1/system/health")).json()["status"] == "ok"

    metrics = (await client.get("/api/v1/system/metrics")).json()
    assert metrics == {
        "users": 2,
        "groups": 1,
        "expenses": 1,
        "settlements": 0,
        "personal_expenses": 1,
    }


async def test_settlement_recorded_by_debtor_as_payer(client, trip):
    gid = trip["group"]["id"]
    alice, bob = trip["alice"], trip["bob"]

    await client.post(f"/api/v1/expenses/groups/{gid}", json={
        "description": "Hotel",
        "amount": "100",
        "date": today(),
        "paid_by": alice.id,
    }, headers=trip["alice_h"])

    await client.post("/api/v1/settlements/", json={
        "group_id": gid,
        "paid_by": bob.id,
        "received_by": alice.id,
        "amount": "50",
    }, headers=trip["bob_h"])

    balances = (await client.get(f"/api/v1/settlements/groups/{gid}/balances", headers=trip["bob_h"])).json()
    assert {b["user_id"]: b["balance"] for b in balances["balances"]} == {alice.id: 100.0, bob.id: -100.0}

    overview = (await client.get("/api/v1/settlements/", headers=trip["alice_h"])).json()
    assert [(d["user_id"], d["net_amount"]) for d in overview["debt_summaries"]] == [(bob.id, 100.0)]


async def test_group_balances_require_membership(client, trip, make_user):
    gid = trip["group"]["id"]
    _, eve_h = await make_user("Eve")

    outsider = await client.get(f"/api/v1/settlements/groups/{gid}/balances", headers=eve_h)
    assert outsider.status_code == 403

    missing = await client.get("/api/v1/settlements/groups/9999/balances", headers=trip["alice_h"])
    assert missing.status_code == 404

    empty = await client.get(f"/api/v1/settlements/groups/{gid}/balances", headers=trip["alice_h"])
    assert empty.json() == {"group_id": gid, "balances": []}
