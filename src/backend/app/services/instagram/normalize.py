"""Locate the leads array inside a Phantom Buster webhook body.

Phantom Buster has delivered results as a bare JSON array, as an object with a
``resultObject`` array, and as an object whose ``resultObject`` is itself a
JSON-encoded string. Depending on the content type the body may also arrive
as raw bytes or as a JSON string wrapping the whole document.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)

PROFILE_URL_KEYS = ("profileUrl", "profile_url", "profileLink")


def _decode(raw: bytes | bytearray) -> str | None:
    try:
        return bytes(raw).decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("Webhook body is not valid UTF-8; ignoring %s bytes", len(raw))
        return None


def _loads(text: str) -> Any:
    stripped = text.strip()
    if not stripped:
        return None
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        logger.warning("Webhook body is not valid JSON")
        return None


def _parse_document(payload: Any) -> Any:
    if isinstance(payload, (bytes, bytearray)):
        payload = _decode(payload)
        if payload is None:
            return None
    if isinstance(payload, str):
        payload = _loads(payload)
        # Stringified JSON inside JSON.
        if isinstance(payload, str):
            payload = _loads(payload)
    return payload


def extract_leads(payload: Any) -> List[Dict[str, Any]]:
    document = _parse_document(payload)

    leads: Any = None
    if isinstance(document, list):
        leads = document
    elif isinstance(document, dict):
        result_object = document.get("resultObject")
        if isinstance(result_object, list):
            leads = result_object
        elif isinstance(result_object, str):
            parsed = _loads(result_object)
            if isinstance(parsed, list):
                leads = parsed

    if leads is None:
        logger.info("Webhook payload did not contain a recognizable array of leads.")
        return []

    return [item for item in leads if isinstance(item, dict)]


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def lead_identity(lead: Dict[str, Any]) -> Tuple[str | None, str | None]:
    username = _clean(lead.get("username"))
    profile_url = None
    for key in PROFILE_URL_KEYS:
        profile_url = _clean(lead.get(key))
        if profile_url:
            break
    return username, profile_url
