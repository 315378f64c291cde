import json
import threading

import pytest

from forecaster.core.encoder import CACHE_KEY, encode
from forecaster.core.forecast import SeriesSpanError
from forecaster.core.session import ForecastSession, PreferenceFlags, UnknownFieldError
from forecaster.core.store import InMemoryStore
from forecaster.models import DEFAULT_RAW_PARAMETERS


class CountingStore(InMemoryStore):
    def __init__(self, initial=None):
        super().__init__(initial)
        self.writes = 0

    def set(self, key, value):
        self.writes += 1
        super().set(key, value)


def cached(store):
    return json.loads(store.get(CACHE_KEY))


def test_starts_from_defaults_without_writing_cache():
    store = InMemoryStore()
    session = ForecastSession(store)

    assert session.raw == DEFAULT_RAW_PARAMETERS
    assert session.shared is False
    assert session.result.possibleRetirementAge == 56
    assert store.get(CACHE_KEY) is None


def test_starts_from_cache():
    saved = DEFAULT_RAW_PARAMETERS.model_copy(update={"currentAge": "35"})
    store = InMemoryStore({CACHE_KEY: saved.model_dump_json()})

    session = ForecastSession(store)

    assert session.raw == saved
    assert session.normalized.currentAge == 35
    assert session.result.inputs.currentAge == 35


def test_shared_token_wins_over_cache_and_edits_are_not_cached():
    saved = DEFAULT_RAW_PARAMETERS.model_copy(update={"currentAge": "35"})
    shared = DEFAULT_RAW_PARAMETERS.model_copy(update={"currentAge": "45"})
    store = InMemoryStore({CACHE_KEY: saved.model_dump_json()})

    session = ForecastSession(store, shared_token=encode(shared))
    assert session.shared is True
    assert session.raw == shared

    session.update_field("retirementAge", "70")
    assert session.raw.retirementAge == "70"
    assert cached(store)["currentAge"] == "35"
    assert cached(store)["retirementAge"] == "65"


def test_bad_token_falls_back_to_cache():
    saved = DEFAULT_RAW_PARAMETERS.model_copy(update={"currentAge": "35"})
    store = InMemoryStore({CACHE_KEY: saved.model_dump_json()})

    session = ForecastSession(store, shared_token="definitely%not%a%token")

    assert session.shared is False
    assert session.raw == saved


def test_bad_token_without_cache_falls_back_to_defaults():
    session = ForecastSession(InMemoryStore(), shared_token="!!!")
    assert session.raw == DEFAULT_RAW_PARAMETERS


def test_corrupt_cache_falls_back_to_defaults():
    session = ForecastSession(InMemoryStore({CACHE_KEY: '{"currentAge": 3}'}))
    assert session.raw == DEFAULT_RAW_PARAMETERS


def test_update_replaces_record_recomputes_and_caches():
    store = InMemoryStore()
    session = ForecastSession(store)
    before_raw, before_result = session.raw, session.result

    result = session.update_field("currentPortfolio", "100000")

    assert before_raw.currentPortfolio == "0.00"
    assert session.raw is not before_raw
    assert result is session.result
    assert result.possibleRetirementAge < before_result.possibleRetirementAge
    assert result.percentFunded > 0
    assert cached(store)["currentPortfolio"] == "100000"


def test_invalid_edit_still_yields_a_result():
    session = ForecastSession(InMemoryStore())

    result = session.update_field("annualWithdrawalRate", "")

    assert result.anyInvalid is True
    assert session.raw.annualWithdrawalRate == ""


def test_unknown_field_leaves_state_untouched():
    store = CountingStore()
    session = ForecastSession(store)
    before = session.raw

    with pytest.raises(UnknownFieldError) as excinfo:
        session.update_fields({"currentAge": "30", "salary": "1"})

    assert "salary" in str(excinfo.value)
    assert session.raw is before
    assert store.writes == 0


def test_update_fields_is_one_transition():
    store = CountingStore()
    session = ForecastSession(store)

    session.update_fields({"currentAge": "30", "retirementAge": "60", "annualExpenses": "40000"})

    assert store.writes == 1
    assert session.normalized.currentAge == 30
    assert session.normalized.retirementAge == 60
    assert session.result.growthSeries[-1].age == 60


def test_reset_restores_defaults_and_caches_them():
    store = InMemoryStore()
    session = ForecastSession(store)
    session.update_field("currentAge", "50")

    session.reset()

    assert session.raw == DEFAULT_RAW_PARAMETERS
    assert cached(store)["currentAge"] == "21"


def test_share_token_reopens_same_scenario():
    session = ForecastSession(InMemoryStore())
    session.update_field("annualContribution", "20000")

    reopened = ForecastSession(InMemoryStore(), shared_token=session.share_token())

    assert reopened.raw == session.raw
    assert reopened.result == session.result


def test_preference_flags_are_independent_of_inputs():
    store = InMemoryStore()
    session = ForecastSession(store)
    flags = PreferenceFlags(store)

    assert flags.get("your_information_expanded") is False
    flags.set("your_information_expanded", True)

    assert flags.get("your_information_expanded") is True
    assert store.get(CACHE_KEY) is None
    assert session.raw == DEFAULT_RAW_PARAMETERS


def test_preference_flags_cannot_use_inputs_key():
    with pytest.raises(ValueError):
        PreferenceFlags(InMemoryStore()).set(CACHE_KEY, True)


def test_concurrent_edits_are_not_lost():
    store = InMemoryStore()
    session = ForecastSession(store)
    start = threading.Barrier(2)

    def edit(field, values):
        start.wait()
        for value in values:
            session.update_field(field, value)

    workers = [
        threading.Thread(target=edit, args=("currentAge", [str(age) for age in range(20, 41)] + ["30"])),
        threading.Thread(target=edit, args=("retirementAge", [str(age) for age in range(50, 71)] + ["70"])),
    ]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert session.raw.currentAge == "30"
    assert session.raw.retirementAge == "70"
    assert cached(store)["currentAge"] == "30"
    assert cached(store)["retirementAge"] == "70"
    _, result = session.snapshot()
    assert result.inputs.currentAge == 30
    assert result.inputs.retirementAge == 70


def test_span_limit_rejects_edit_and_keeps_state():
    store = CountingStore()
    session = ForecastSession(store, max_series_years=200)

    with pytest.raises(SeriesSpanError):
        session.update_field("currentAge", "-10000000")

    assert session.raw == DEFAULT_RAW_PARAMETERS
    assert store.writes == 0


def test_span_limit_ignores_oversized_shared_token():
    saved = DEFAULT_RAW_PARAMETERS.model_copy(update={"currentAge": "35"})
    store = InMemoryStore({CACHE_KEY: saved.model_dump_json()})
    shared = DEFAULT_RAW_PARAMETERS.model_copy(update={"currentAge": "-10000000"})

    session = ForecastSession(store, shared_token=encode(shared), max_series_years=200)

    assert session.shared is False
    assert session.raw == saved


def test_oversized_age_edit_still_yields_a_result():
    session = ForecastSession(InMemoryStore(), max_series_years=200)

    result = session.update_field("retirementAge", "1" * 400)

    assert result.anyInvalid is True
    assert session.raw.retirementAge == "1" * 400
