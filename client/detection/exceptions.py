"""Custom exceptions for the detection session."""


class SessionError(Exception):
    """Base detection session exception."""


class NoFileSelectedError(SessionError):
    """Raised when detection is requested before an image was selected."""


class InvalidTransitionError(SessionError):
    """Raised when an operation is not allowed in the session's current state."""


class SessionBusyError(InvalidTransitionError):
    """Raised when a run is requested while another run is in flight."""
