"""Parse the model's JSON answer into an EvaluationRecord.

Only surrounding code fences are stripped. Anything else that is not the
exact JSON shape is a MalformedResponseError carrying the raw text.
"""

import json
import logging
import re

from pydantic import ValidationError

from repograde.errors import MalformedResponseError
from repograde.models.model_evaluation import REQUIRED_FIELDS, EvaluationRecord

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"^```[\w-]*[ \t]*\n?(?P<body>.*?)\n?[ \t]*```$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove a markdown code fence wrapping the whole text, if present."""
    stripped = text.strip()
    match = _FENCE_PATTERN.match(stripped)
    if match:
        return match.group("body").strip()
    return stripped


def parse_evaluation(text: str) -> EvaluationRecord:
    """Parse model output into an EvaluationRecord.

    Args:
        text: Raw model output.

    Returns:
        Parsed record with values exactly as in the JSON.

    Raises:
        MalformedResponseError: Not JSON, not an object, missing keys or wrong types.
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise MalformedResponseError("Model returned an empty response", raw_text=text)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse evaluation JSON: {e}")
        raise MalformedResponseError(f"Response is not valid JSON: {e}", raw_text=text) from e

    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Expected a JSON object, got {type(data).__name__}", raw_text=text
        )

    missing = [key for key in REQUIRED_FIELDS if key not in data]
    if missing:
        raise MalformedResponseError(
            f"Invalid evaluation object structure, missing: {', '.join(missing)}",
            raw_text=text,
        )

    try:
        return EvaluationRecord.model_validate(data)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise MalformedResponseError(
            f"Invalid evaluation field types: {', '.join(fields)}", raw_text=text
        ) from e
