"""Parse finished response text and reconcile known shape quirks.

The model is asked for a JSON object, but the payload field does not
always arrive as a plain string. The recognized shapes are enumerated
and everything else falls through to a single Retry:

===================  =====================================================
payload value        outcome
===================  =====================================================
string               Done, unchanged
object, one key      Done, with the key promoted to the payload string
object, many keys    Retry
any other type       Retry
field absent         Done, unchanged (field validation decides later)
===================  =====================================================
"""

from __future__ import annotations

import enum
import json
import logging
from typing import Any

from critloop.llm.errors import JsonParseError, UnexpectedJsonStructureError
from critloop.llm.stream import Done, Retry

logger = logging.getLogger(__name__)

DEFAULT_PAYLOAD_FIELD = "code"


class PayloadShape(str, enum.Enum):
    """Classification of a payload field value."""

    ABSENT = "absent"
    STRING = "string"
    SINGLETON_OBJECT = "singleton_object"
    OTHER_OBJECT = "other_object"
    OTHER = "other"


def classify_payload(obj: dict[str, Any], payload_field: str) -> PayloadShape:
    if payload_field not in obj:
        return PayloadShape.ABSENT
    value = obj[payload_field]
    if isinstance(value, str):
        return PayloadShape.STRING
    if isinstance(value, dict):
        if len(value) == 1:
            return PayloadShape.SINGLETON_OBJECT
        return PayloadShape.OTHER_OBJECT
    return PayloadShape.OTHER


def parse_json_text(text: str) -> Any:
    """Parse ``text`` as JSON.

    Raises:
        JsonParseError: If the text is not valid JSON.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise JsonParseError(str(exc), text) from exc


def normalize(text: str, payload_field: str | None = DEFAULT_PAYLOAD_FIELD) -> Done | Retry:
    """Turn finished response text into Done or Retry.

    Args:
        text: The accumulated response body.
        payload_field: Field whose shape quirks are reconciled, or None
            to skip reconciliation (e.g. for review responses).

    Returns:
        Done with the (possibly repaired) object, or Retry when the
        payload is ambiguous.

    Raises:
        JsonParseError: If the text is not valid JSON.
        UnexpectedJsonStructureError: If the top-level value is not an object.
    """
    parsed = parse_json_text(text)
    if not isinstance(parsed, dict):
        raise UnexpectedJsonStructureError(parsed)

    if payload_field is None:
        return Done(parsed)

    shape = classify_payload(parsed, payload_field)
    if shape in (PayloadShape.ABSENT, PayloadShape.STRING):
        return Done(parsed)
    if shape is PayloadShape.SINGLETON_OBJECT:
        (key,) = parsed[payload_field].keys()
        logger.info(
            "Recovered %r payload returned as a single-key object", payload_field
        )
        return Done({**parsed, payload_field: key})
    return Retry(f"{payload_field!r} payload has ambiguous shape: {shape.value}")
