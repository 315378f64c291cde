"""HTTP routes for the Flask API."""

from http import HTTPStatus
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from pydantic import BaseModel, ValidationError

from forecaster.core.encoder import SHARE_QUERY_PARAM, share_url
from forecaster.core.forecast import SeriesSpanError, check_series_span, derive_forecast
from forecaster.core.normalize import normalize
from forecaster.core.session import ForecastSession, PreferenceFlags, UnknownFieldError
from forecaster.models import DEFAULT_RAW_PARAMETERS
from forecaster.schemas.scenario import (
    ForecastRequest,
    PingResponse,
    PreferenceBody,
    PreferenceResponse,
    ScenarioResponse,
    ShareResponse,
)

api_bp = Blueprint("api", __name__)


def _state() -> Dict[str, Any]:
    return current_app.extensions["forecaster"]


def _new_session(token=None) -> ForecastSession:
    state = _state()
    return ForecastSession(
        state["store"],
        shared_token=token,
        max_series_years=state["config"].max_series_years,
    )


def _session() -> ForecastSession:
    state = _state()
    with state["session_lock"]:
        if state["session"] is None:
            state["session"] = _new_session()
        return state["session"]


def _model_response(model: BaseModel, status: HTTPStatus = HTTPStatus.OK):
    # model_dump_json writes NaN and infinities as null, which json.dumps would not
    return current_app.response_class(
        model.model_dump_json(),
        status=status,
        mimetype="application/json",
    )


def _scenario_response(session: ForecastSession):
    raw, result = session.snapshot()
    return _model_response(ScenarioResponse(inputs=raw, forecast=result, shared=session.shared))


@api_bp.errorhandler(ValidationError)
def _handle_validation_error(exc: ValidationError):
    """Convert Pydantic validation errors into JSON responses."""
    errors = exc.errors(include_url=False, include_context=False)
    return jsonify({"detail": errors}), HTTPStatus.UNPROCESSABLE_ENTITY


@api_bp.errorhandler(UnknownFieldError)
def _handle_unknown_field(exc: UnknownFieldError):
    return jsonify({"detail": str(exc)}), HTTPStatus.BAD_REQUEST


@api_bp.errorhandler(SeriesSpanError)
def _handle_series_span(exc: SeriesSpanError):
    return jsonify({"detail": str(exc)}), HTTPStatus.UNPROCESSABLE_ENTITY


@api_bp.get("/ping")
def ping() -> Any:
    """Health-check endpoint."""
    return jsonify(PingResponse(message="pong").model_dump())


@api_bp.post("/forecast")
def forecast() -> Any:
    """Stateless forecast for the posted inputs; nothing is cached."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = ForecastRequest.model_validate(raw_payload)
    normalized = normalize(payload.with_defaults(DEFAULT_RAW_PARAMETERS))
    max_years = _state()["config"].max_series_years
    if max_years is not None:
        check_series_span(normalized, max_years)
    return _model_response(derive_forecast(normalized))


@api_bp.get("/scenario")
def get_scenario() -> Any:
    """Load the scenario as a page visit would: share token first, then cache, then defaults."""
    state = _state()
    session = _new_session(request.args.get(SHARE_QUERY_PARAM))
    with state["session_lock"]:
        state["session"] = session
    return _scenario_response(session)


@api_bp.patch("/scenario")
def update_scenario() -> Any:
    raw_payload = request.get_json(force=True, silent=False)
    if not isinstance(raw_payload, dict):
        return jsonify({"detail": "expected an object of field names to values"}), HTTPStatus.BAD_REQUEST
    session = _session()
    session.update_fields(raw_payload)
    return _scenario_response(session)


@api_bp.delete("/scenario")
def reset_scenario() -> Any:
    session = _session()
    session.reset()
    return _scenario_response(session)


@api_bp.get("/scenario/share")
def share_scenario() -> Any:
    session = _session()
    token = session.share_token()
    base_url = _state()["config"].share_base_url
    return _model_response(ShareResponse(token=token, url=share_url(base_url, token)))


@api_bp.get("/preferences/<name>")
def get_preference(name: str) -> Any:
    flags = PreferenceFlags(_state()["store"])
    try:
        value = flags.get(name)
    except ValueError as exc:
        return jsonify({"detail": str(exc)}), HTTPStatus.BAD_REQUEST
    return jsonify(PreferenceResponse(name=name, value=value).model_dump())


@api_bp.put("/preferences/<name>")
def set_preference(name: str) -> Any:
    body = PreferenceBody.model_validate(request.get_json(force=True, silent=False))
    flags = PreferenceFlags(_state()["store"])
    try:
        flags.set(name, body.value)
    except ValueError as exc:
        return jsonify({"detail": str(exc)}), HTTPStatus.BAD_REQUEST
    return jsonify(PreferenceResponse(name=name, value=body.value).model_dump())
