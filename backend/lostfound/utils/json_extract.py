"""Pull a JSON value out of free-form model output.

Models often wrap JSON in markdown fences even when told not to. The
fences are stripped and the rest must be strict JSON. Failures come back
as a ``ParseFailure`` value instead of an exception so callers can decide
how to degrade.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger()

_FENCE = re.compile(r"```json|```")
RAW_LOG_LIMIT = 2000


@dataclass(frozen=True)
class Parsed:
    value: Any


@dataclass(frozen=True)
class ParseFailure:
    error: str
    raw: str


ParseResult = Parsed | ParseFailure


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def strip_code_fences(text: str) -> str:
    return _FENCE.sub("", text).strip()


def extract_structured(raw_text: str | None) -> ParseResult:
    cleaned = strip_code_fences(raw_text or "")
    try:
        return Parsed(json.loads(cleaned, parse_constant=_reject_constant))
    except ValueError as exc:
        logger.error(
            "model_json_invalid",
            error=str(exc),
            raw=(raw_text or "")[:RAW_LOG_LIMIT],
        )
        return ParseFailure(error=str(exc), raw=raw_text or "")
