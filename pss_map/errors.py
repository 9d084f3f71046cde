"""
Error taxonomy shared by the map core and the backend.
"""


class PssError(Exception):
    """Base class for all errors raised by the map core."""


class StoreError(PssError):
    """Reading or writing the Resource Store or a Blob Store failed."""


class ValidationError(PssError):
    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class AuthorizationError(PssError):
    """The actor is not allowed to perform the mutation."""


class NotFoundError(PssError):
    pass
