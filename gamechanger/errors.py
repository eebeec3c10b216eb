from __future__ import annotations


class GameChangerError(Exception):
    pass


class ValidationError(GameChangerError, ValueError):
    """Bad user input. `message` is safe to show as-is in an alert."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class RemoteStoreError(GameChangerError):
    pass


class RemoteNotConfigured(RemoteStoreError):
    pass


class AuthError(GameChangerError):
    pass
