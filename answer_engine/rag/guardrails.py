from __future__ import annotations

from typing import Any


class InputError(ValueError):
    """Raised when a question is missing or invalid."""
    pass


DEFAULT_INPUT_ERROR = "A valid, non-empty question is required."


def require_question(question: Any) -> str:
    if not isinstance(question, str):
        raise InputError(DEFAULT_INPUT_ERROR)
    cleaned = question.strip()
    if not cleaned:
        raise InputError(DEFAULT_INPUT_ERROR)
    return cleaned
