"""Exception taxonomy for the rotation engine."""


class StreamlogError(Exception):
    """Base class for all errors raised by streamlog."""


class ConfigError(StreamlogError):
    """Raised before any log is opened: bad values, busy or unwritable directory."""


class FatalIOError(StreamlogError):
    """Raised when the active log can no longer be written, closed, renamed or reopened."""


class StreamEndedError(StreamlogError):
    """Raised when the input stream ends without a termination request."""


class TimestampError(StreamlogError):
    """Raised when a line prefix cannot be rendered. Recoverable."""
