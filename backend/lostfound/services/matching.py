"""Match a lost-item description against every stored found item.

The model does the comparison. This module builds the prompt, reads the
scored list back, applies the score threshold and joins the surviving
ids to full records. Results keep the order the model returned them in.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from lostfound.errors import MatchFailedError
from lostfound.models.contracts import FoundItemView, MatchedItem, MatchResult
from lostfound.models.db import FoundItem
from lostfound.store import FoundItemStore
from lostfound.utils.gemini import GeminiClient
from lostfound.utils.json_extract import ParseFailure, extract_structured

logger = structlog.get_logger()

DEFAULT_THRESHOLD = 60

MATCH_PROMPT_TEMPLATE = """
User lost item description:
"{description}"

Compare with found items below.

Return ONLY valid JSON.
Format:
[
  {{ "id": "<id>", "score": 80, "reason": "why matched" }}
]

Found items:
{candidates}
"""


def simplify(items: list[FoundItem]) -> list[dict[str, str]]:
    """Fields sent to the model. No image data."""
    return [
        {"id": str(item.id), "description": item.description, "location": item.location}
        for item in items
    ]


def build_match_prompt(description: str, items: list[FoundItem]) -> str:
    return MATCH_PROMPT_TEMPLATE.format(
        description=description,
        candidates=json.dumps(simplify(items), indent=2),
    )


def _coerce_score(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def read_results(value: Any) -> list[MatchResult]:
    """Turn the parsed reply into MatchResults, skipping malformed entries."""
    if not isinstance(value, list):
        logger.warning("match_response_not_a_list", value_type=type(value).__name__)
        return []
    results = []
    for entry in value:
        if not isinstance(entry, dict) or entry.get("id") is None:
            logger.warning("match_entry_skipped", entry=repr(entry)[:200])
            continue
        score = _coerce_score(entry.get("score"))
        if score is None:
            logger.warning("match_entry_bad_score", entry=repr(entry)[:200])
            continue
        reason = entry.get("reason")
        results.append(
            MatchResult(
                item_id=str(entry["id"]),
                score=score,
                reason=reason if isinstance(reason, str) else "",
            )
        )
    return results


def join_matches(
    results: list[MatchResult],
    items: list[FoundItem],
    threshold: int = DEFAULT_THRESHOLD,
) -> list[MatchedItem]:
    """Keep scores at or above ``threshold`` whose id is a known item."""
    by_id = {str(item.id): item for item in items}
    matched = []
    for result in results:
        if result.score < threshold:
            continue
        item = by_id.get(result.item_id)
        if item is None:
            logger.info("match_unknown_item_dropped", item_id=result.item_id)
            continue
        matched.append(
            MatchedItem(
                item=FoundItemView.model_validate(item),
                score=result.score,
                reason=result.reason,
            )
        )
    return matched


async def match_lost(
    store: FoundItemStore,
    inference: GeminiClient,
    description: str,
    *,
    threshold: int = DEFAULT_THRESHOLD,
) -> list[MatchedItem]:
    items = await store.list_all()
    if not items:
        logger.info("match_no_candidates")
        return []

    prompt = build_match_prompt(description, items)
    try:
        raw = await inference.complete_text(prompt)
    except Exception as exc:
        logger.exception("match_inference_failed", candidates=len(items))
        raise MatchFailedError() from exc

    parsed = extract_structured(raw)
    if isinstance(parsed, ParseFailure):
        logger.warning("match_response_unparsable", candidates=len(items))
        return []

    matched = join_matches(read_results(parsed.value), items, threshold)
    logger.info(
        "match_complete",
        candidates=len(items),
        matched=len(matched),
        threshold=threshold,
    )
    return matched
