"""Error types raised by the TaskFlow accessors.

The Streamlit layer turns these into user-facing messages; nothing here
knows about the UI.
"""


class TaskFlowError(Exception):
    """Base class for every error the app reports to the user."""


class ConfigurationError(TaskFlowError):
    """Backend credentials are missing or unusable. Fatal for the session."""


class AuthError(TaskFlowError):
    """The auth provider rejected the request."""


class InvalidCredentials(AuthError):
    pass


class EmailInUse(AuthError):
    pass


class WeakPassword(AuthError):
    pass


class Forbidden(TaskFlowError):
    """The acting profile's role does not allow the operation."""


class NotFound(TaskFlowError):
    pass


class ValidationError(TaskFlowError):
    """A required field is missing or empty."""


class StoreError(TaskFlowError):
    """Firestore read/write failed."""


class NetworkError(TaskFlowError):
    """The auth endpoint could not be reached."""


class ProfileFetchError(StoreError):
    pass


class PartnerRemovalError(TaskFlowError):
    """One or both partner removal steps failed; see ``report``."""

    def __init__(self, message, report):
        super().__init__(message)
        self.report = report
