class ConfigurationError(RuntimeError):
    """Required configuration is missing; the application cannot start."""


class AuthOperationError(Exception):
    """An auth or profile operation was rejected. ``message`` is safe to show to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
