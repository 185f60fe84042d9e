"""Request DTOs validated before anything reaches a TypingSession.

Key events are a tagged union so the state machine only ever receives a
single symbol or the backspace sentinel.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from models.exceptions import InvalidInput
from models.input_validator import BACKSPACE, InputValidator


class _Request(BaseModel):
    model_config = {
        "extra": "forbid",
        "frozen": True,
    }


class SnippetSource(_Request):
    """A snippet chosen by the file-scanning collaborator, with its language tag."""

    snippet: str
    language: str

    @field_validator("snippet")
    @classmethod
    def validate_snippet(cls, v: str) -> str:
        return InputValidator.validate_snippet(v)

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        return InputValidator.validate_language_name(v)


class CharacterKey(_Request):
    """A printable (or whitespace) symbol typed by the user."""

    kind: Literal["character"] = "character"
    value: str

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: str) -> str:
        InputValidator.validate_single_character(v)
        if v == BACKSPACE:
            raise ValueError("Use a backspace key event for corrections")
        return v

    def to_symbol(self) -> str:
        return self.value


class BackspaceKey(_Request):
    """A correction keystroke."""

    kind: Literal["backspace"] = "backspace"

    def to_symbol(self) -> str:
        return BACKSPACE


KeyEvent = Annotated[Union[CharacterKey, BackspaceKey], Field(discriminator="kind")]

_key_event_adapter: TypeAdapter[Union[CharacterKey, BackspaceKey]] = TypeAdapter(KeyEvent)


class KeystrokeRequest(_Request):
    """One keystroke addressed to a live session."""

    session_id: str
    key: KeyEvent

    @field_validator("session_id")
    @classmethod
    def validate_session_id(cls, v: str) -> str:
        return InputValidator.validate_session_id(v)


class CompleteSessionRequest(_Request):
    """Finalize a session on behalf of a user."""

    session_id: str
    user_id: str = "default"

    @field_validator("session_id")
    @classmethod
    def validate_session_id(cls, v: str) -> str:
        return InputValidator.validate_session_id(v)

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        return InputValidator.validate_user_id(v)


def key_event_from_character(character: Any) -> Union[CharacterKey, BackspaceKey]:
    """Build the key event for a raw character, treating ``"\\b"`` as backspace.

    Raises:
        InvalidInput: If ``character`` is not exactly one symbol.
    """
    InputValidator.validate_single_character(character)
    if character == BACKSPACE:
        return BackspaceKey()
    return CharacterKey(value=character)


def parse_key_event(data: Dict[str, Any]) -> Union[CharacterKey, BackspaceKey]:
    """Validate a raw ``{"kind": ..., ...}`` payload into a key event."""
    try:
        return _key_event_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidInput(f"Invalid key event: {e}") from e
