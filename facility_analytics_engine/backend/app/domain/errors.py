# backend/app/domain/errors.py
from __future__ import annotations


class EngineError(Exception):
    """Base for errors the analytics engine surfaces to its caller."""

    code = "ENGINE_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class ValidationError(EngineError):
    code = "VALIDATION_ERROR"


class NotFoundError(EngineError):
    code = "NOT_FOUND"
