"""End-to-end tests for the HTTP API."""

import asyncio
import pathlib
import sys

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel

# Allow importing the family_chores package
sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from family_chores.main import app
from family_chores.auth import create_access_token
from family_chores.crud import create_family, create_member
from family_chores.database import get_session
from family_chores.models import Family, FamilyMember, Role


async def _setup_test_db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    TestSession = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_session():
        async with TestSession() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with TestSession() as session:
        family = await create_family(session, Family(name="Rivera"))
        ids = {}
        for name, role in (("mom", Role.MOM), ("teen", Role.TEEN), ("kid", Role.CHILD)):
            member = await create_member(
                session, FamilyMember(family_id=family.id, name=name.title(), role=role)
            )
            ids[name] = member.id
        other = await create_family(session, Family(name="Nguyen"))
        neighbour = await create_member(
            session, FamilyMember(family_id=other.id, name="Dad", role=Role.DAD)
        )
        ids["neighbour"] = neighbour.id
    return TestSession, family.id, ids


def _headers(member_id):
    return {"Authorization": f"Bearer {create_access_token(member_id)}"}


def test_chore_flow_over_http():
    async def run():
        _, family_id, ids = await _setup_test_db()
        mom, teen, kid = (_headers(ids[n]) for n in ("mom", "teen", "kid"))
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/members/me", headers=kid)
            assert resp.status_code == 200
            assert resp.json()["name"] == "Kid"
            assert resp.json()["points"] == 0

            resp = await client.get("/members/me")
            assert resp.status_code == 401
            resp = await client.get("/members/me", headers={"Authorization": "Bearer junk"})
            assert resp.status_code == 401
            resp = await client.get(f"/members/{ids['neighbour']}", headers=kid)
            assert resp.status_code == 404
            resp = await client.get(f"/families/{family_id}/members", headers=kid)
            assert [m["name"] for m in resp.json()] == ["Mom", "Teen", "Kid"]

            resp = await client.post(
                "/chores/", headers=kid, json={"title": "Dishes", "points": 10}
            )
            assert resp.status_code == 403
            assert resp.json()["code"] == "unauthorized"

            resp = await client.post(
                "/chores/",
                headers=mom,
                json={
                    "title": "Dishes",
                    "points": 10,
                    "assigned_to_ids": [ids["teen"], ids["kid"]],
                },
            )
            assert resp.status_code == 200
            chore = resp.json()
            assert chore["status"] == "OPEN"

            resp = await client.post(
                f"/chores/{chore['id']}/submit",
                headers=kid,
                json={"doer_ids": [ids["kid"], ids["teen"]], "proofs": []},
            )
            assert resp.status_code == 400
            assert resp.json()["code"] == "missing_proof"

            resp = await client.post(
                f"/chores/{chore['id']}/submit",
                headers=kid,
                json={
                    "doer_ids": [ids["kid"], ids["teen"]],
                    "proofs": [{"uri": "https://cdn.example.com/1.jpg", "kind": "image"}],
                },
            )
            assert resp.status_code == 200
            assert resp.json()["status"] == "SUBMITTED"

            review = {"expected_status": "SUBMITTED"}
            resp = await client.post(
                f"/chores/{chore['id']}/approve", headers=teen, json=review
            )
            assert resp.status_code == 403
            resp = await client.post(
                f"/chores/{chore['id']}/approve", headers=mom, json=review
            )
            assert resp.status_code == 200
            assert resp.json()["status"] == "APPROVED"
            resp = await client.post(
                f"/chores/{chore['id']}/approve", headers=mom, json=review
            )
            assert resp.status_code == 409
            assert resp.json()["code"] == "stale_state"

            resp = await client.get(
                f"/members/{ids['kid']}/points/history", headers=kid
            )
            assert resp.status_code == 200
            history = resp.json()
            assert history["balance"] == 5
            assert [e["delta"] for e in history["entries"]] == [5]
            assert history["entries"][0]["kind"] == "chore_approval"

            resp = await client.post(
                f"/members/{ids['kid']}/points/adjust",
                headers=kid,
                json={"delta": 100, "reason": "because"},
            )
            assert resp.status_code == 403
            resp = await client.post(
                f"/members/{ids['kid']}/points/adjust",
                headers=mom,
                json={"delta": -2, "reason": "broke a plate"},
            )
            assert resp.status_code == 200
            resp = await client.post(
                f"/families/{family_id}/points/reconcile", headers=mom
            )
            assert resp.status_code == 200
            assert resp.json() == {"members_checked": 3}

            resp = await client.get("/chores/999", headers=mom)
            assert resp.status_code == 404
            assert resp.json()["code"] == "not_found"
            resp = await client.get(
                "/chores/history/expired", headers=mom, params={"period": "year"}
            )
            assert resp.status_code == 400
            resp = await client.delete(f"/chores/{chore['id']}", headers=mom)
            assert resp.status_code == 409
            assert resp.json()["code"] == "invalid_transition"

    asyncio.run(run())


def test_wishlist_flow_over_http():
    async def run():
        _, _, ids = await _setup_test_db()
        mom, kid = _headers(ids["mom"]), _headers(ids["kid"])
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.put(
                "/wishlist/settings", headers=kid, json={"self_fulfill_max_price": 500}
            )
            assert resp.status_code == 403
            resp = await client.put(
                "/wishlist/settings", headers=mom, json={"points_per_currency": 0}
            )
            assert resp.status_code == 400
            assert resp.json()["code"] == "invalid_rate"
            resp = await client.put(
                "/wishlist/settings", headers=mom, json={"self_fulfill_max_price": 50}
            )
            assert resp.status_code == 200
            assert resp.json()["currency"] == "CAD"

            resp = await client.get("/wishlist/convert", headers=kid, params={"price": 100})
            assert resp.json()["points"] == 1000
            resp = await client.get("/wishlist/convert", headers=kid, params={"points": 125})
            assert resp.json()["price"] == "12.50"
            resp = await client.get("/wishlist/convert", headers=kid)
            assert resp.status_code == 400

            resp = await client.post(
                "/wishlist/",
                headers=kid,
                json={"title": "Bike", "price": 100, "fulfillment_mode": "self"},
            )
            assert resp.status_code == 200
            item = resp.json()
            assert item["points_cost"] == 1000

            fulfill = {"expected_status": "open"}
            resp = await client.post(
                f"/wishlist/{item['id']}/fulfill", headers=kid, json=fulfill
            )
            assert resp.status_code == 403
            assert resp.json()["code"] == "over_self_fulfill_limit"
            resp = await client.post(
                f"/wishlist/{item['id']}/fulfill", headers=mom, json=fulfill
            )
            assert resp.status_code == 200
            assert resp.json()["status"] == "fulfilled"
            resp = await client.post(
                f"/wishlist/{item['id']}/fulfill", headers=mom, json=fulfill
            )
            assert resp.status_code == 409
            assert resp.json()["code"] == "already_fulfilled"
            resp = await client.put(
                f"/wishlist/{item['id']}", headers=kid, json={"title": "Faster bike"}
            )
            assert resp.status_code == 409

            resp = await client.get("/members/me", headers=kid)
            assert resp.json()["points"] == -1000
            resp = await client.get(
                "/wishlist/", headers=kid, params={"status": "fulfilled"}
            )
            assert [i["id"] for i in resp.json()] == [item["id"]]

    asyncio.run(run())


def test_templates_over_http():
    async def run():
        _, _, ids = await _setup_test_db()
        mom = _headers(ids["mom"])
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post(
                "/chore-templates/", headers=mom, json={"title": "Trash", "default_points": 2}
            )
            assert resp.status_code == 200
            template_id = resp.json()["id"]

            resp = await client.post(
                "/chores/", headers=mom, json={"template_id": template_id}
            )
            assert resp.status_code == 200
            assert (resp.json()["title"], resp.json()["points"]) == ("Trash", 2)

            resp = await client.post(
                f"/chore-templates/{template_id}/archive", headers=mom
            )
            assert resp.json()["is_archived"] is True
            resp = await client.get("/chore-templates/", headers=mom)
            assert resp.json() == []

    asyncio.run(run())


def test_points_summary_over_http():
    async def run():
        _, _, ids = await _setup_test_db()
        mom, kid = _headers(ids["mom"]), _headers(ids["kid"])
        url = f"/members/{ids['kid']}/points/summary"
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            for delta, reason in ((6, "allowance"), (-2, "lost library book")):
                resp = await client.post(
                    f"/members/{ids['kid']}/points/adjust",
                    headers=mom,
                    json={"delta": delta, "reason": reason},
                )
                assert resp.status_code == 200

            resp = await client.get(url, headers=kid)
            assert resp.status_code == 200
            body = resp.json()
            assert (body["earned"], body["spent"], body["net"]) == (6, 2, 4)
            assert sum(day["earned"] for day in body["days"]) == 6

            resp = await client.get(url, headers=kid, params={"week_offset": -1})
            assert resp.json()["net"] == 0 and resp.json()["days"] == []
            resp = await client.get(url, headers=kid, params={"week_offset": 1})
            assert resp.status_code == 422
            resp = await client.get(
                url,
                headers=kid,
                params={"start": "2024-05-19T00:00:00", "end": "2024-05-12T00:00:00"},
            )
            assert resp.status_code == 400
            assert resp.json()["code"] == "invalid_input"
            resp = await client.get(
                f"/members/{ids['kid']}/points/summary", headers=_headers(ids["neighbour"])
            )
            assert resp.status_code == 404

    asyncio.run(run())
