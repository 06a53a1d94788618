"""Structural validation of inbound sensor payloads.

Two payload shapes are accepted and normalized to the same Reading:

- flat: SSID counts as sibling keys of ``device_id`` / ``timestamp``
- nested: SSID counts under an explicit ``data`` object

Count values are passed through untouched.
"""

from __future__ import annotations

import json
from typing import Any

from probe_server.core.errors import EmptyPayload, InvalidBody, MissingField
from probe_server.core.models import Reading

ENVELOPE_FIELDS = ("device_id", "timestamp")


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or value == 0


def _ssid_counts(payload: dict) -> dict[str, Any]:
    siblings = {k: v for k, v in payload.items() if k not in ENVELOPE_FIELDS}
    nested = siblings.get("data")
    if isinstance(nested, dict):
        # Nested shape; any extra sibling keys are merged after the data block.
        del siblings["data"]
        return {**nested, **siblings}
    # Flat shape; a non-object "data" is just an SSID with that name.
    return siblings


def parse_body(body: bytes | str) -> Any:
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidBody("Request body is not valid JSON") from exc


def validate(payload: Any) -> Reading:
    """Turn a JSON payload (raw body or decoded) into an un-stamped Reading.

    Raises MissingField, EmptyPayload or InvalidBody.
    """
    if isinstance(payload, (bytes, bytearray, str)):
        payload = parse_body(payload)
    if not isinstance(payload, dict):
        raise InvalidBody("Request body must be a JSON object")

    for name in ENVELOPE_FIELDS:
        if _is_missing(payload.get(name)):
            raise MissingField(name)

    counts = _ssid_counts(payload)
    if not counts:
        raise EmptyPayload()

    return Reading(
        device_id=str(payload["device_id"]),
        sensor_timestamp=payload["timestamp"],
        ssid_counts=counts,
    )
