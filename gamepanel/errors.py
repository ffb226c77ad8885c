"""Error taxonomy for the panel core.

Every error here is meant to be shown to the user as a message. None of them
should take the process down.
"""


class PanelError(Exception):
    """Base class for all panel errors."""


class ConfigurationError(PanelError):
    """No XManage endpoint or credential configured."""


class TransportError(PanelError):
    """A Gateway call failed (network or HTTP)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class QuotaError(PanelError):
    """A creation or resize request was rejected by the quota enforcer."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ValidationError(PanelError):
    """Missing or malformed creation fields. Raised before any Gateway call."""


class InvalidTransition(PanelError):
    """Lifecycle command not allowed from the server's current status."""

    def __init__(self, command: str, status: str):
        super().__init__(f"Cannot {command} a server that is {status}")
        self.command = command
        self.status = status


class NotFound(PanelError):
    """Unknown server or user id."""


class PermissionDenied(PanelError):
    """No session user, or the session user may not perform the action."""
