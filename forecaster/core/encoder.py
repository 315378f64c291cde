"""Serialize raw scenario inputs for share links and the local cache.

The share token is base64 over compact JSON. It is an encoding, not
encryption: anyone holding a token can read the inputs back.
"""

from __future__ import annotations

import base64
import binascii
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from loguru import logger
from pydantic import ValidationError

from forecaster.core.store import KeyValueStore
from forecaster.models import RawParameters

CACHE_KEY = "retirement_forecasting_inputs"
SHARE_QUERY_PARAM = "data"


class DecodeError(ValueError):
    """Raised when a share token cannot be turned back into RawParameters."""


def encode(raw: RawParameters) -> str:
    payload = raw.model_dump_json().encode("utf-8")
    return base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=")


def decode(token: str) -> RawParameters:
    # accept both alphabets so tokens built with plain base64 still load;
    # query-string parsing turns an unescaped "+" into a space
    normalized = token.replace(" ", "+").strip().replace("+", "-").replace("/", "_")
    normalized += "=" * (-len(normalized) % 4)
    try:
        payload = base64.b64decode(normalized, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"token is not valid base64: {exc}") from exc

    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError("token payload is not UTF-8 text") from exc

    try:
        return RawParameters.model_validate_json(text)
    except ValidationError as exc:
        raise DecodeError(f"token payload is not a scenario: {exc.error_count()} error(s)") from exc


def share_url(base_url: str, token: str) -> str:
    """``base_url`` with ``token`` set as the share query parameter."""
    parts = urlsplit(base_url)
    query = [(key, value) for key, value in parse_qsl(parts.query) if key != SHARE_QUERY_PARAM]
    query.append((SHARE_QUERY_PARAM, token))
    return urlunsplit(parts._replace(query=urlencode(query)))


def save_to_cache(store: KeyValueStore, raw: RawParameters) -> None:
    store.set(CACHE_KEY, raw.model_dump_json())


def load_from_cache(store: KeyValueStore) -> Optional[RawParameters]:
    cached = store.get(CACHE_KEY)
    if cached is None:
        return None
    try:
        return RawParameters.model_validate_json(cached)
    except ValidationError as exc:
        logger.warning(f"Ignoring unreadable cached inputs under '{CACHE_KEY}': {exc.error_count()} error(s)")
        return None
