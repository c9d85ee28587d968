"""
AnalystTrack Error Taxonomy

Every failure is scoped to the operation that raised it:
- ValidationError: missing or malformed user input, caught before any write
- AuthenticationError: identity provider rejected the credentials or token
- StoreLookupError: document store read failed (transport or permission)
- StoreWriteError: document store write was rejected; nothing was applied
"""


class AnalystTrackError(Exception):
    """Base class for all domain errors"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AnalystTrackError, ValueError):
    status_code = 400


class AuthenticationError(AnalystTrackError):
    status_code = 401


class StoreLookupError(AnalystTrackError, LookupError):
    status_code = 503


class StoreWriteError(AnalystTrackError):
    status_code = 503
