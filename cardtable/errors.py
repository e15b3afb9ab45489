"""
Errors - Infrastructure exceptions.

Gameplay problems never raise: a bad command is logged and
reported through CommandResult. Only failures of the surrounding
infrastructure (storage, unknown sessions) are exceptions.
"""


class CardTableError(Exception):
    """Base class for engine exceptions."""


class StoreError(CardTableError):
    """A document could not be read from or written to the backing store."""

    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key


class SessionNotFoundError(CardTableError):
    """No active session with the given ID."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id
