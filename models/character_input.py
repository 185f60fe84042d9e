"""CharacterInput model: one immutable entry in a typing session's input log."""

import unicodedata

from pydantic import BaseModel, Field, field_validator

from models.input_validator import BACKSPACE


class CharacterInput(BaseModel):
    """A single keystroke applied to a session.

    ``timestamp`` is in seconds on the session's clock. ``position`` is the
    cursor position at the moment the key was pressed. Backspace entries keep
    ``actual`` set to the backspace sentinel and are never marked correct.
    """

    expected: str = ""
    actual: str
    timestamp: float = Field(ge=0)
    is_correct: bool
    position: int = Field(ge=0, description="Cursor position the key was applied at")

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("expected", "actual", mode="before")
    @classmethod
    def _normalize_nfc(cls, v: object) -> str:
        """Normalize character fields to NFC so comparisons are stable."""
        if v is None:
            return ""
        if not isinstance(v, str):
            v = str(v)
        return unicodedata.normalize("NFC", v)

    @property
    def is_backspace(self) -> bool:
        """True if this entry records a backspace (a correction)."""
        return self.actual == BACKSPACE

    @property
    def is_error(self) -> bool:
        """True for a typed character that did not match the expected one."""
        return not self.is_backspace and not self.is_correct

    @property
    def mistake_key(self) -> str:
        """Render the mistake as ``expected→actual``."""
        return f"{self.expected}→{self.actual}"
