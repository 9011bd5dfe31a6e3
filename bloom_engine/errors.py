"""
Engine Errors

Exceptions raised by the session and progression layers.
Classification never raises; collaborator failures are wrapped in
ExternalServiceError so callers can fall back to a safe default.
"""


class BloomEngineError(Exception):
    """Base class for all engine errors."""


class SessionNotFoundError(BloomEngineError, KeyError):
    """No live session with the given id."""

    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"No active session '{self.session_id}'"


class SessionEndedError(BloomEngineError, RuntimeError):
    """A mutator was called on a session that has already ended."""

    def __init__(self, session_id: str):
        super().__init__(f"Session '{session_id}' has ended")
        self.session_id = session_id


class ExternalServiceError(BloomEngineError):
    """A collaborator (text generation, persistence, sentiment) failed."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service
