"""Parsing of JSON objects out of model responses."""

import json
import logging
from typing import Any

from recall.errors import ParseError

logger = logging.getLogger(__name__)


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse a JSON object from a model response.

    Accepts bare JSON or JSON wrapped in markdown fences. Raises
    ``ParseError`` when no JSON object can be decoded.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Try to extract JSON from markdown fences
        start = text.find("{")
        end = text.rfind("}") + 1
        if "```" not in text or start < 0 or end <= start:
            logger.warning("Model response is not JSON: %r", text[:200])
            msg = "Model response is not valid JSON"
            raise ParseError(msg) from None
        try:
            data = json.loads(text[start:end])
        except json.JSONDecodeError as exc:
            logger.warning("Failed to parse fenced JSON: %r", text[:200])
            msg = f"Model response is not valid JSON: {exc}"
            raise ParseError(msg) from exc

    if not isinstance(data, dict):
        msg = f"Expected a JSON object, got {type(data).__name__}"
        raise ParseError(msg)
    return data
