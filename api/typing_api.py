"""Typing session REST API.

Thin Flask adapter over TypingService. Payloads are validated by the
service's DTOs; domain errors are mapped to HTTP status codes here.
"""

import logging
from typing import Any, Dict

from flask import Blueprint, Response, current_app, jsonify, make_response, request

from db.exceptions import DatabaseError
from models.exceptions import (
    DuplicateSession,
    InvalidInput,
    InvalidStateTransition,
    SessionNotFound,
)
from models.input_validator import BACKSPACE
from models.session_requests import parse_key_event
from services.typing_service import TypingService

logger = logging.getLogger(__name__)

typing_api = Blueprint("typing_api", __name__, url_prefix="/api")


def get_typing_service() -> TypingService:
    """Return the TypingService registered on the current app."""
    return current_app.extensions["typing_service"]


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def _error(message: str, status: int, **extra: Any) -> Response:
    body = {"error": message}
    body.update(extra)
    return make_response(jsonify(body), status)


@typing_api.errorhandler(InvalidInput)
def handle_invalid_input(e: InvalidInput):
    return _error(f"Invalid input: {e.message}", 400)


@typing_api.errorhandler(SessionNotFound)
def handle_not_found(e: SessionNotFound):
    return _error("Session not found", 404, session_id=e.session_id)


@typing_api.errorhandler(InvalidStateTransition)
def handle_invalid_state(e: InvalidStateTransition):
    return _error(e.message, 409, state=e.state)


@typing_api.errorhandler(DuplicateSession)
def handle_duplicate(e: DuplicateSession):
    return _error(e.message, 409)


@typing_api.errorhandler(DatabaseError)
def handle_database_error(e: DatabaseError):
    logger.error("Storage failure: %s", e)
    return _error("Storage failure", 500)


@typing_api.route("/health", methods=["GET"])
def api_health():
    return make_response(
        jsonify({"status": "healthy", "live_sessions": len(get_typing_service().registry)}), 200
    )


@typing_api.route("/session/start", methods=["POST"])
def api_start_session():
    """Start a session for a snippet: ``{"snippet": ..., "language": ...}``."""
    result = get_typing_service().start_session(_json_body())
    return make_response(jsonify(result.model_dump(mode="json")), 201)


@typing_api.route("/session/<session_id>/input", methods=["POST"])
def api_process_input(session_id: str):
    """Apply one keystroke.

    Accepts either ``{"character": "a"}`` or a tagged key event
    ``{"key": {"kind": "character", "value": "a"}}`` / ``{"key": {"kind": "backspace"}}``.
    """
    data = _json_body()
    service = get_typing_service()
    if "key" in data:
        key = parse_key_event(data["key"])
        character = key.to_symbol()
    else:
        character = data.get("character")
    result = service.process_input(session_id, character)
    return make_response(jsonify(result.model_dump(mode="json")), 200)


@typing_api.route("/session/<session_id>/backspace", methods=["POST"])
def api_backspace(session_id: str):
    result = get_typing_service().process_input(session_id, BACKSPACE)
    return make_response(jsonify(result.model_dump(mode="json")), 200)


@typing_api.route("/session/<session_id>/pause", methods=["POST"])
def api_pause(session_id: str):
    result = get_typing_service().pause_session(session_id)
    return make_response(jsonify(result.model_dump(mode="json")), 200)


@typing_api.route("/session/<session_id>/resume", methods=["POST"])
def api_resume(session_id: str):
    result = get_typing_service().resume_session(session_id)
    return make_response(jsonify(result.model_dump(mode="json")), 200)


@typing_api.route("/session/<session_id>/complete", methods=["POST"])
def api_complete(session_id: str):
    """Finalize a session: ``{"user_id": "alice"}`` (defaults to ``default``)."""
    data = _json_body()
    result = get_typing_service().complete_session(session_id, data.get("user_id", "default"))
    return make_response(jsonify(result.model_dump(mode="json")), 200)


@typing_api.route("/statistics/<user_id>", methods=["GET"])
def api_statistics(user_id: str):
    summary = get_typing_service().get_statistics(user_id)
    return make_response(jsonify(summary.model_dump(mode="json")), 200)


@typing_api.route("/leaderboard", methods=["GET"])
def api_leaderboard():
    limit = request.args.get("limit")
    entries = get_typing_service().get_leaderboard(limit)
    return make_response(jsonify([e.model_dump(mode="json") for e in entries]), 200)
