"""Exceptions raised by the CareLink client."""

from typing import Optional


class CareLinkError(Exception):
    """Base client error."""

    def __init__(self, message: str, title: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.title = title


class ValidationError(CareLinkError):
    """Local input problem caught before any request is made."""

    pass


class CredentialError(CareLinkError):
    """The backend rejected the submitted credentials."""

    def __init__(
        self, message: str, reason: Optional[str] = None, title: Optional[str] = None
    ):
        super().__init__(message, title=title)
        self.reason = reason


class TransportError(CareLinkError):
    """Network failure, unexpected status, or a response that could not be parsed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        title: Optional[str] = None,
    ):
        super().__init__(message, title=title)
        self.status_code = status_code


class BackendError(CareLinkError):
    """The server answered normally but reported ``success: false``."""

    pass
