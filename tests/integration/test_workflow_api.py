"""Integration: the idea -> sub-idea -> proposal -> prototype workflow over HTTP."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient

IDEA = {"title": "Neighbourhood compost", "description": "Shared compost bins on every street", "type": "IDEATION"}


async def _post(client: AsyncClient, url: str, headers: dict[str, str], body: dict[str, Any]) -> dict[str, Any]:
    response = await client.post(url, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def _idea_with_sub_idea(client: AsyncClient, owner: dict[str, str]) -> tuple[dict, dict]:
    idea = await _post(client, "/api/v1/ideas", owner, IDEA)
    sub_idea = await _post(
        client,
        "/api/v1/subideas",
        owner,
        {
            "idea_id": idea["id"],
            "title": "Bin design",
            "description": "Rodent-proof bins that are easy to turn",
            "status": "OPEN_FOR_PROTOTYPING",
        },
    )
    return idea, sub_idea


async def _idea_counters(client: AsyncClient, idea_id: int) -> tuple[int, int]:
    data = (await client.get(f"/api/v1/ideas/{idea_id}")).json()["data"]
    return data["total_proposals"], data["total_prototypes"]


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_full_hierarchy(self, client: AsyncClient, alice, bob, carol, auth):
        owner, builder = auth(alice), auth(bob)

        response = await client.post("/api/v1/ideas", json=IDEA, headers=owner)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Idea created successfully"
        idea = body["data"]
        assert idea["status"] == "OPEN"
        assert idea["author"]["name"] == "Alice"

        _, sub_idea = await _idea_with_sub_idea(client, owner)
        proposal = await _post(
            client,
            f"/api/v1/proposals/submit/{sub_idea['id']}",
            builder,
            {"title": "Tumbler bins", "description": "Rotating barrels on a frame", "presentation_url": "https://x.io"},
        )
        assert proposal["status"] == "PENDING"

        # Not accepted yet: no prototype, no counter change.
        prototype_body = {
            "title": "Tumbler v1",
            "description": "Two barrels on a welded frame",
            "image_url": "https://img.example.com/tumbler.png",
            "team": [carol.id],
        }
        response = await client.post(
            f"/api/v1/prototypes/submit/{proposal['id']}", json=prototype_body, headers=builder
        )
        assert response.status_code == 403
        assert response.json() == {
            "success": False,
            "message": "Prototypes can only be created for accepted proposals",
            "data": None,
        }
        idea_id = sub_idea["idea_id"]
        assert await _idea_counters(client, idea_id) == (1, 0)

        response = await client.patch(
            f"/api/v1/proposals/{proposal['id']}/status", json={"status": "ACCEPTED"}, headers=owner
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Proposal accepted successfully"

        prototype = await _post(client, f"/api/v1/prototypes/submit/{proposal['id']}", builder, prototype_body)
        assert prototype["proposal"]["status"] == "ACCEPTED"
        assert {m["user_id"] for m in prototype["team"]} == {bob.id, carol.id}

        response = await client.post(
            f"/api/v1/prototypes/submit/{proposal['id']}", json=prototype_body, headers=builder
        )
        assert response.status_code == 409
        assert response.json()["message"] == "You already have a prototype for this proposal"

        assert await _idea_counters(client, idea_id) == (1, 1)

        me = (await client.get("/api/v1/profile/me", headers=builder)).json()["data"]
        assert me["stars_balance"] == 4
        public = (await client.get(f"/api/v1/users/{alice.id}")).json()["data"]
        assert public["stars_balance"] == 6  # two ideas and a sub-idea
        assert public["contributions"]["ideas"] == 2
        assert "email" not in public

    @pytest.mark.asyncio
    async def test_listing_under_an_idea(self, client: AsyncClient, alice, bob, auth):
        owner, builder = auth(alice), auth(bob)
        idea, sub_idea = await _idea_with_sub_idea(client, owner)
        await _post(
            client,
            f"/api/v1/proposals/submit/{sub_idea['id']}",
            builder,
            {"title": "Pallet bins", "description": "Bins built from reclaimed pallets"},
        )

        subs = (await client.get(f"/api/v1/ideas/{idea['id']}/subideas")).json()
        assert [s["id"] for s in subs["data"]] == [sub_idea["id"]]
        assert subs["pagination"]["total_count"] == 1

        proposals = (await client.get(f"/api/v1/ideas/{idea['id']}/proposals", params={"status": "PENDING"})).json()
        assert proposals["pagination"]["total_count"] == 1

        response = await client.get("/api/v1/ideas/424242/proposals")
        assert response.status_code == 404
        assert response.json()["message"] == "Idea not found"


class TestClosedIdea:
    @pytest.mark.asyncio
    async def test_closed_idea_refuses_sub_ideas(self, client: AsyncClient, alice, auth):
        owner = auth(alice)
        idea, _ = await _idea_with_sub_idea(client, owner)

        response = await client.patch(f"/api/v1/ideas/{idea['id']}/close", headers=owner)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "CLOSED"

        response = await client.post(
            "/api/v1/subideas",
            json={
                "idea_id": idea["id"],
                "title": "Late arrival",
                "description": "Added after the idea closed",
                "status": "SELF_PROTOTYPING",
            },
            headers=owner,
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Cannot create sub-ideas for closed ideas"

        listing = (await client.get("/api/v1/subideas", params={"idea_id": idea["id"]})).json()
        assert listing["pagination"]["total_count"] == 1

        response = await client.patch(f"/api/v1/ideas/{idea['id']}/close", headers=owner)
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_default_listing_hides_closed(self, client: AsyncClient, alice, auth):
        owner = auth(alice)
        kept = await _post(client, "/api/v1/ideas", owner, IDEA)
        closed = await _post(client, "/api/v1/ideas", owner, {**IDEA, "title": "Closed one"})
        await client.patch(f"/api/v1/ideas/{closed['id']}/close", headers=owner)

        default = (await client.get("/api/v1/ideas")).json()["data"]
        assert [i["id"] for i in default] == [kept["id"]]

        everything = (await client.get("/api/v1/ideas", params={"status": "ALL"})).json()["data"]
        assert {i["id"] for i in everything} == {kept["id"], closed["id"]}

        only_closed = (await client.get("/api/v1/ideas", params={"status": "closed"})).json()["data"]
        assert [i["id"] for i in only_closed] == [closed["id"]]

        response = await client.get("/api/v1/ideas", params={"status": "ARCHIVED"})
        assert response.status_code == 400


class TestAuthorization:
    @pytest.mark.asyncio
    async def test_stranger_cannot_edit_or_delete(self, client: AsyncClient, alice, bob, auth):
        idea = await _post(client, "/api/v1/ideas", auth(alice), IDEA)

        response = await client.put(f"/api/v1/ideas/{idea['id']}", json={"title": "Hijacked"}, headers=auth(bob))
        assert response.status_code == 403
        assert response.json()["message"] == "Unauthorized to update this idea"

        response = await client.delete(f"/api/v1/ideas/{idea['id']}", headers=auth(bob))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_may_delete(self, client: AsyncClient, alice, admin, auth):
        idea = await _post(client, "/api/v1/ideas", auth(alice), IDEA)
        response = await client.delete(f"/api/v1/ideas/{idea['id']}", headers=auth(admin))
        assert response.status_code == 200
        assert (await client.get(f"/api/v1/ideas/{idea['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_empty_update_is_rejected(self, client: AsyncClient, alice, auth):
        idea = await _post(client, "/api/v1/ideas", auth(alice), IDEA)
        response = await client.put(f"/api/v1/ideas/{idea['id']}", json={}, headers=auth(alice))
        assert response.status_code == 400
        assert response.json()["message"] == "No fields to update"

    @pytest.mark.asyncio
    async def test_rejection_requires_reason(self, client: AsyncClient, alice, bob, auth):
        _, sub_idea = await _idea_with_sub_idea(client, auth(alice))
        proposal = await _post(
            client,
            f"/api/v1/proposals/submit/{sub_idea['id']}",
            auth(bob),
            {"title": "Pallet bins", "description": "Bins built from reclaimed pallets"},
        )

        response = await client.patch(
            f"/api/v1/proposals/{proposal['id']}/status", json={"status": "REJECTED"}, headers=auth(alice)
        )
        assert response.status_code == 400

        response = await client.patch(
            f"/api/v1/proposals/{proposal['id']}/status",
            json={"status": "REJECTED", "rejection_reason": "Pallets rot too fast"},
            headers=auth(alice),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert (data["status"], data["rejection_reason"]) == ("REJECTED", "Pallets rot too fast")


class TestVotesAndComments:
    @pytest.mark.asyncio
    async def test_vote_toggle(self, client: AsyncClient, alice, bob, auth):
        _, sub_idea = await _idea_with_sub_idea(client, auth(alice))
        url = f"/api/v1/votes/subideas/{sub_idea['id']}"

        first = (await client.post(url, json={"value": 1}, headers=auth(bob))).json()
        assert first["data"]["action"] == "created"
        assert first["data"]["vote_counts"] == {"upvotes": 1, "downvotes": 0, "total": 1}

        flipped = (await client.post(url, json={"value": -1}, headers=auth(bob))).json()
        assert flipped["data"]["action"] == "updated"
        assert flipped["data"]["vote_counts"] == {"upvotes": 0, "downvotes": 1, "total": -1}

        removed = (await client.post(url, json={"value": -1}, headers=auth(bob))).json()
        assert removed["data"]["action"] == "removed"
        assert removed["data"]["vote"] is None
        assert removed["data"]["vote_counts"]["total"] == 0

        summary = (await client.get(url, headers=auth(bob))).json()["data"]
        assert summary == {"vote_counts": {"upvotes": 0, "downvotes": 0, "total": 0}, "user_vote": None}

    @pytest.mark.asyncio
    async def test_invalid_vote_value(self, client: AsyncClient, alice, bob, auth):
        _, sub_idea = await _idea_with_sub_idea(client, auth(alice))
        response = await client.post(
            f"/api/v1/votes/subideas/{sub_idea['id']}", json={"value": 3}, headers=auth(bob)
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Vote value must be 1 (upvote) or -1 (downvote)"

    @pytest.mark.asyncio
    async def test_unknown_target_kind(self, client: AsyncClient, bob, auth):
        response = await client.post("/api/v1/votes/ideas/1", json={"value": 1}, headers=auth(bob))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_threaded_comments(self, client: AsyncClient, alice, bob, auth):
        owner = auth(alice)
        idea, first = await _idea_with_sub_idea(client, owner)
        second = await _post(
            client,
            "/api/v1/subideas",
            owner,
            {
                "idea_id": idea["id"],
                "title": "Collection route",
                "description": "Weekly pickup by cargo bike",
                "status": "SELF_PROTOTYPING",
            },
        )

        root = await _post(client, f"/api/v1/comments/{first['id']}", auth(bob), {"content": "Love this"})
        reply = await _post(
            client,
            f"/api/v1/comments/{first['id']}",
            owner,
            {"content": "Thanks!", "parent_comment_id": root["id"]},
        )
        assert reply["parent_comment_id"] == root["id"]

        response = await client.post(
            f"/api/v1/comments/{second['id']}",
            json={"content": "Misplaced reply", "parent_comment_id": root["id"]},
            headers=auth(bob),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Parent comment not found or belongs to a different sub-idea."

        thread = (await client.get(f"/api/v1/comments/{first['id']}")).json()["data"]
        assert thread["total_comments"] == 2
        assert thread["comments"][0]["id"] == root["id"]
        assert [r["id"] for r in thread["comments"][0]["replies"]] == [reply["id"]]

    @pytest.mark.asyncio
    async def test_comment_content_is_sanitised(self, client: AsyncClient, alice, auth):
        _, sub_idea = await _idea_with_sub_idea(client, auth(alice))
        comment = await _post(
            client,
            f"/api/v1/comments/{sub_idea['id']}",
            auth(alice),
            {"content": "  hi <script>alert('x')</script>there  "},
        )
        assert comment["content"] == "hi there"
