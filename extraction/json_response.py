"""Parsing of JSON answers returned by the AI."""
import json
import re
from typing import Any

from utils.logger import setup_logger

logger = setup_logger(__name__)

_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")


class ResponseParseError(Exception):
    """Raised when the AI answered but its answer was not usable JSON."""
    pass


def strip_code_fences(response: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    text = response.strip()

    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]

    if text.endswith("```"):
        text = text[:-3]

    return text.strip()


def parse_json_response(response: str) -> Any:
    """Parse a JSON answer, tolerating code fences and surrounding prose.

    Strict parsing of the fence-stripped text is tried first, then the first
    ``{`` to the last ``}`` span.

    Args:
        response: Raw completion text

    Returns:
        The decoded JSON value

    Raises:
        ResponseParseError: If neither attempt yields valid JSON
    """
    text = strip_code_fences(response)

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = _OBJECT_SPAN.search(text)
    if not match:
        logger.error(f"No JSON object in response. First 500 chars: {response[:500]}")
        raise ResponseParseError("Could not find valid JSON in response")

    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error(f"Could not parse extracted JSON. First 500 chars: {response[:500]}")
        raise ResponseParseError(f"Could not parse JSON response from AI: {e}") from e
