"""Period and value parsing shared by provider response parsers."""

import json
import math
from datetime import date
from typing import Any

from econfeed.config.constants import MISSING_VALUE_MARKERS
from econfeed.ingestion.exceptions import ParseError

MISSING = math.nan


def parse_period(text: str) -> date:
    """Parse a provider period string to the first day it covers.

    "2023" -> year, "2023-01" -> month, "2023Q1" -> quarter,
    "2023M01" -> month, anything else -> ISO calendar date.

    Raises:
        ValueError: If the string matches none of the shapes.
    """
    text = text.strip()
    if len(text) == 4:
        return date(int(text), 1, 1)
    if len(text) == 7 and "-" in text:
        year, month = text.split("-")
        return date(int(year), int(month), 1)
    if "Q" in text:
        year, quarter = text.split("Q")
        return date(int(year), (int(quarter) - 1) * 3 + 1, 1)
    if "M" in text:
        year, month = text.split("M")
        return date(int(year), int(month), 1)
    return date.fromisoformat(text)


def parse_value(raw: Any) -> float:
    """Parse an observation value, returning NaN for anything unusable."""
    if raw is None:
        return MISSING
    if isinstance(raw, bool):
        return MISSING
    if isinstance(raw, (int, float)):
        return float(raw)
    text = str(raw).strip()
    if text in MISSING_VALUE_MARKERS:
        return MISSING
    try:
        return float(text.replace(",", ""))
    except ValueError:
        return MISSING


def load_json(body: str, source: str) -> Any:
    """Decode a response body, mapping decode failures to ParseError."""
    try:
        return json.loads(body)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseError(
            f"{source} response is not valid JSON",
            context={"source": source, "error": str(e)},
        ) from e
