"""The single owner of the current scenario inputs.

A ``ForecastSession`` holds one ``RawParameters`` record. Every edit replaces
that record wholesale, reruns ``derive_forecast(normalize(raw))`` and then
writes the new record to the cache, unless the session was opened from a
share token. Edits run one at a time under the session lock.
"""

from __future__ import annotations

import threading
from typing import Mapping, Optional, Tuple

from loguru import logger

from forecaster.core.encoder import (
    CACHE_KEY,
    DecodeError,
    decode,
    encode,
    load_from_cache,
    save_to_cache,
)
from forecaster.core.forecast import SeriesSpanError, check_series_span, derive_forecast
from forecaster.core.normalize import normalize
from forecaster.core.store import KeyValueStore
from forecaster.models import (
    DEFAULT_RAW_PARAMETERS,
    RAW_FIELDS,
    ForecastResult,
    NormalizedParameters,
    RawParameters,
)


class UnknownFieldError(KeyError):
    def __init__(self, names):
        self.names = sorted(names)
        super().__init__(f"unknown input field(s): {', '.join(self.names)}")

    def __str__(self) -> str:
        return self.args[0]


class ForecastSession:
    def __init__(
        self,
        store: KeyValueStore,
        shared_token: Optional[str] = None,
        defaults: RawParameters = DEFAULT_RAW_PARAMETERS,
        max_series_years: Optional[int] = None,
    ):
        self.store = store
        self.defaults = defaults
        self.max_series_years = max_series_years
        self.shared = False
        self._lock = threading.RLock()

        raw: Optional[RawParameters] = None
        if shared_token:
            try:
                raw = self._admit(decode(shared_token))
                self.shared = True
                logger.info("Session initialised from shared token")
            except (DecodeError, SeriesSpanError) as exc:
                logger.warning(f"Something went wrong while decoding shared token: {exc}")

        if raw is None:
            cached = load_from_cache(store)
            if cached is not None:
                try:
                    raw = self._admit(cached)
                    logger.info("Session initialised from cached inputs")
                except SeriesSpanError as exc:
                    logger.warning(f"Ignoring cached inputs: {exc}")

        if raw is None:
            raw = defaults
            logger.info("Session initialised from defaults")

        self._replace(raw)

    @property
    def raw(self) -> RawParameters:
        return self._raw

    @property
    def normalized(self) -> NormalizedParameters:
        return self._normalized

    @property
    def result(self) -> ForecastResult:
        return self._result

    def snapshot(self) -> Tuple[RawParameters, ForecastResult]:
        """Inputs and forecast from the same transition."""
        with self._lock:
            return self._raw, self._result

    def _admit(self, raw: RawParameters) -> RawParameters:
        if self.max_series_years is not None:
            check_series_span(normalize(raw), self.max_series_years)
        return raw

    def _replace(self, raw: RawParameters) -> None:
        normalized = normalize(raw)
        result = derive_forecast(normalized)
        self._raw, self._normalized, self._result = raw, normalized, result

    def _transition(self, raw: RawParameters) -> None:
        self._replace(raw)
        logger.debug(f"Recomputed forecast, anyInvalid={self._result.anyInvalid}")
        if not self.shared:
            save_to_cache(self.store, raw)

    def update_field(self, name: str, value: str) -> ForecastResult:
        return self.update_fields({name: value})

    def update_fields(self, values: Mapping[str, str]) -> ForecastResult:
        """Apply several edits as one transition: one recompute, one cache write."""
        unknown = set(values) - set(RAW_FIELDS)
        if unknown:
            raise UnknownFieldError(unknown)
        with self._lock:
            updated = RawParameters.model_validate({**self._raw.model_dump(), **values})
            self._transition(self._admit(updated))
            return self._result

    def reset(self) -> ForecastResult:
        with self._lock:
            self._transition(self.defaults)
            return self._result

    def share_token(self) -> str:
        with self._lock:
            return encode(self._raw)


class PreferenceFlags:
    """Boolean UI flags (e.g. whether a panel is expanded), one store key each.

    These keys are independent of the cached scenario inputs.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _check(self, name: str) -> None:
        if name == CACHE_KEY:
            raise ValueError(f"'{name}' is reserved for scenario inputs")

    def get(self, name: str, default: bool = False) -> bool:
        self._check(name)
        value = self.store.get(name)
        if value is None:
            return default
        return value == "true"

    def set(self, name: str, value: bool) -> None:
        self._check(name)
        self.store.set(name, "true" if value else "false")
