"""
Tests for scripts/load_test.py: an in-process run against the app, and a
run against a stub server that never reports matches.
"""

import random
import uuid

import httpx
import pytest

from scripts.load_test import run_load_test


def _server_without_matches(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/v1/users":
        return httpx.Response(201, json={"id": str(uuid.uuid4())})
    if request.url.path == "/api/v1/swipes":
        return httpx.Response(201, json={"matched": False, "match_id": None})
    return httpx.Response(200, json=[])


class TestLoadTest:
    @pytest.mark.asyncio
    async def test_small_run_has_no_duplicate_or_missed_matches(self, client):
        random.seed(7)

        results = await run_load_test(client, count=6)

        assert results["users_created"] == 6
        assert results["pairs"] == 15
        assert results["duplicate_matches"] == 0
        assert results["missed_matches"] == 0
        assert results["errors"] == []
        assert results["matches_formed"] <= results["pairs"]
        assert results["messages_sent"] == 2 * results["matches_formed"]

    @pytest.mark.asyncio
    async def test_mutual_likes_without_match_are_counted_as_missed(self):
        """Pairs where both sides liked but no response matched are not hidden."""
        random.seed(7)
        transport = httpx.MockTransport(_server_without_matches)
        async with httpx.AsyncClient(transport=transport, base_url="http://stub") as stub:
            results = await run_load_test(stub, count=6)

        assert results["matches_formed"] == 0
        assert results["missed_matches"] > 0
        assert sum(e.startswith("Missed match") for e in results["errors"]) == (
            results["missed_matches"]
        )
