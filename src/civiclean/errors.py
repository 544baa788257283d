"""Typed engine errors.

Every guard failure in the ticket lifecycle and gamification engine is raised
as one of these before any state is written. The API layer renders them via
the handler registered in ``civiclean.middleware.error_handler``.
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class for all engine failures."""

    status_code: int = 400
    code: str = "ENGINE_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class NotFound(EngineError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidTransition(EngineError):
    """A status guard failed: the requested move is not in the transition table."""

    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str, message: str | None = None) -> None:
        self.current = current
        self.target = target
        super().__init__(message or f"Invalid transition: {current} -> {target}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "from": self.current, "to": self.target}


class Forbidden(EngineError):
    status_code = 403
    code = "FORBIDDEN"


class ValidationFailed(EngineError):
    status_code = 422
    code = "VALIDATION_FAILED"


class AlreadyCompleted(EngineError):
    """Mission progress no-op. Carries the frozen user-mission state."""

    status_code = 200
    code = "ALREADY_COMPLETED"

    def __init__(self, user_mission: Any, message: str = "Mission is already completed") -> None:  # noqa: ANN401
        super().__init__(message)
        self.user_mission = user_mission


class ConflictRetry(EngineError):
    """Optimistic-concurrency collision. The whole operation may be retried."""

    status_code = 409
    code = "CONFLICT_RETRY"
