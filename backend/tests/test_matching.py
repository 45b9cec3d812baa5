"""Tests for lost/found matching (backend/lostfound/services/matching.py).

Gemini is mocked; the SQLite-backed store holds the candidate items.
"""

import json
from unittest.mock import AsyncMock

import pytest
from google.genai import errors

from lostfound.errors import MatchFailedError
from lostfound.models.contracts import MatchResult
from lostfound.services.matching import (
    build_match_prompt,
    join_matches,
    match_lost,
    read_results,
)


@pytest.fixture
async def items(item_store):
    umbrella = await item_store.create(
        image_path="uploads/1-umbrella.png",
        description="Red umbrella with wooden handle",
        location="Library",
    )
    wallet = await item_store.create(
        image_path="uploads/2-wallet.png",
        description="Brown leather wallet",
        location="Cafeteria",
    )
    return umbrella, wallet


def _reply(*entries: dict) -> str:
    return json.dumps(list(entries))


class TestBuildMatchPrompt:
    @pytest.mark.asyncio
    async def test_embeds_description_and_candidates(self, items):
        umbrella, wallet = items

        prompt = build_match_prompt("I lost my red umbrella", list(items))

        assert '"I lost my red umbrella"' in prompt
        assert "Return ONLY valid JSON" in prompt
        assert '"score"' in prompt and '"reason"' in prompt
        assert str(umbrella.id) in prompt
        assert "Brown leather wallet" in prompt
        assert "Cafeteria" in prompt

    @pytest.mark.asyncio
    async def test_excludes_image_data(self, items):
        prompt = build_match_prompt("anything", list(items))
        assert "uploads/" not in prompt
        assert "image_path" not in prompt


class TestReadResults:
    def test_reads_entries(self):
        results = read_results([{"id": "a", "score": 80, "reason": "same colour"}])
        assert results == [MatchResult(item_id="a", score=80, reason="same colour")]

    def test_not_a_list(self):
        assert read_results({"id": "a", "score": 90}) == []

    def test_skips_malformed_entries(self):
        results = read_results(
            [
                "junk",
                {"score": 90},
                {"id": "a", "score": "high"},
                {"id": "b", "score": True},
                {"id": "c", "score": "75", "reason": None},
                {"id": 7, "score": 88.6},
            ]
        )
        assert results == [
            MatchResult(item_id="c", score=75, reason=""),
            MatchResult(item_id="7", score=88, reason=""),
        ]

    def test_overflowing_scores_are_skipped(self):
        results = read_results(
            [
                {"id": "a", "score": float("inf")},
                {"id": "b", "score": "1e400"},
                {"id": "c", "score": float("nan")},
                {"id": "d", "score": 70},
            ]
        )
        assert results == [MatchResult(item_id="d", score=70, reason="")]


class TestJoinMatches:
    @pytest.mark.asyncio
    async def test_threshold_boundary(self, items):
        umbrella, wallet = items
        results = [
            MatchResult(item_id=str(umbrella.id), score=59, reason="close"),
            MatchResult(item_id=str(wallet.id), score=60, reason="enough"),
        ]

        matched = join_matches(results, list(items))

        assert [m.item.id for m in matched] == [wallet.id]
        assert matched[0].score == 60

    @pytest.mark.asyncio
    async def test_unknown_ids_dropped(self, items):
        matched = join_matches([MatchResult(item_id="ghost", score=99)], list(items))
        assert matched == []


class TestMatchLost:
    @pytest.mark.asyncio
    async def test_score_59_excluded(self, item_store, inference, items):
        umbrella, _ = items
        inference.complete_text = AsyncMock(
            return_value=_reply({"id": str(umbrella.id), "score": 59, "reason": "maybe"})
        )

        assert await match_lost(item_store, inference, "red umbrella") == []

    @pytest.mark.asyncio
    async def test_score_60_included(self, item_store, inference, items):
        umbrella, _ = items
        inference.complete_text = AsyncMock(
            return_value=_reply({"id": str(umbrella.id), "score": 60, "reason": "colour"})
        )

        matched = await match_lost(item_store, inference, "red umbrella")

        assert len(matched) == 1
        assert matched[0].item.description == "Red umbrella with wooden handle"
        assert matched[0].item.location == "Library"
        assert matched[0].reason == "colour"

    @pytest.mark.asyncio
    async def test_unknown_id_dropped_silently(self, item_store, inference, items):
        umbrella, _ = items
        inference.complete_text = AsyncMock(
            return_value=_reply(
                {"id": "does-not-exist", "score": 95, "reason": "?"},
                {"id": str(umbrella.id), "score": 85, "reason": "handle"},
            )
        )

        matched = await match_lost(item_store, inference, "umbrella")

        assert [m.item.id for m in matched] == [umbrella.id]

    @pytest.mark.asyncio
    async def test_model_order_preserved(self, item_store, inference, items):
        umbrella, wallet = items
        inference.complete_text = AsyncMock(
            return_value=_reply(
                {"id": str(wallet.id), "score": 70, "reason": "b"},
                {"id": str(umbrella.id), "score": 95, "reason": "a"},
            )
        )

        matched = await match_lost(item_store, inference, "something")

        assert [m.score for m in matched] == [70, 95]

    @pytest.mark.asyncio
    async def test_fenced_reply_is_accepted(self, item_store, inference, items):
        umbrella, _ = items
        body = _reply({"id": str(umbrella.id), "score": 90, "reason": "x"})
        inference.complete_text = AsyncMock(return_value=f"```json\n{body}\n```")

        matched = await match_lost(item_store, inference, "umbrella")

        assert len(matched) == 1

    @pytest.mark.asyncio
    async def test_unparsable_reply_means_no_matches(self, item_store, inference, items):
        inference.complete_text = AsyncMock(return_value="Sorry, I cannot help with that.")
        assert await match_lost(item_store, inference, "umbrella") == []

    @pytest.mark.asyncio
    async def test_custom_threshold(self, item_store, inference, items):
        umbrella, _ = items
        inference.complete_text = AsyncMock(
            return_value=_reply({"id": str(umbrella.id), "score": 75, "reason": "x"})
        )

        assert await match_lost(item_store, inference, "umbrella", threshold=80) == []

    @pytest.mark.asyncio
    async def test_prompt_sent_as_text(self, item_store, inference, items):
        await match_lost(item_store, inference, "lost my wallet")

        prompt = inference.complete_text.await_args.args[0]
        assert "lost my wallet" in prompt

    @pytest.mark.asyncio
    async def test_no_items_skips_model(self, item_store, inference):
        assert await match_lost(item_store, inference, "umbrella") == []
        inference.complete_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remote_failure_raises(self, item_store, inference, items):
        inference.complete_text = AsyncMock(
            side_effect=errors.ServerError(503, {"error": {"code": 503, "status": "UNAVAILABLE"}})
        )

        with pytest.raises(MatchFailedError):
            await match_lost(item_store, inference, "umbrella")

    @pytest.mark.asyncio
    async def test_overflowing_score_means_no_match(self, item_store, inference, items):
        umbrella, wallet = items
        inference.complete_text = AsyncMock(
            return_value=(
                f'[{{"id": "{umbrella.id}", "score": 1e400, "reason": "huge"}},'
                f' {{"id": "{wallet.id}", "score": 75, "reason": "leather"}}]'
            )
        )

        matched = await match_lost(item_store, inference, "wallet")

        assert [m.item.id for m in matched] == [wallet.id]

    @pytest.mark.asyncio
    async def test_infinity_constant_means_no_matches(self, item_store, inference, items):
        umbrella, _ = items
        inference.complete_text = AsyncMock(
            return_value=f'[{{"id": "{umbrella.id}", "score": Infinity, "reason": "x"}}]'
        )

        assert await match_lost(item_store, inference, "umbrella") == []
