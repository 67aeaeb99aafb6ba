class StudioError(Exception):
    """Base exception for the style studio core."""


class ConfigurationError(StudioError):
    """Raised when configuration values are missing or invalid."""


class StudioNotInitializedError(StudioError):
    """Raised when the studio is used before initialization."""


class AuthenticationError(StudioError):
    """Base class for authentication failures."""


class NotSignedInError(AuthenticationError):
    """Raised when an authenticated action is attempted without a session."""


class SessionExpiredError(AuthenticationError):
    """Raised when the local session lifetime has elapsed."""


class AnalysisFailedError(StudioError):
    """Raised when the analysis backend fails for the current request."""


class HistoryStorageError(StudioError):
    """Raised by storage backends when a read or write cannot be completed."""


class InputRejectedError(StudioError):
    """Base class for user input the studio refuses to act on."""


class InvalidInputError(InputRejectedError):
    """Raised when a label or product id fails validation."""


class InvalidUploadError(InputRejectedError):
    """Raised when an uploaded image is unreadable, too large or of the wrong type."""
