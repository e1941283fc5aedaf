"""Exception types surfaced to the user as notifications."""

from typing import List, Optional


class KMCarsError(Exception):
    """Base class for errors shown to the user."""

    title = "Erro"

    def __init__(self, message: str, title: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if title is not None:
            self.title = title


class ValidationError(KMCarsError):
    """Form data failed its field constraints."""

    title = "Dados inválidos"

    def __init__(self, errors: List[str], title: Optional[str] = None):
        super().__init__("; ".join(errors), title)
        self.errors = errors


class BackendError(KMCarsError):
    """The backend rejected or failed a request. Carries the raw message."""


class MissingPrerequisiteError(KMCarsError):
    """An operation was attempted without what it needs (session, car, type)."""


class AuthError(KMCarsError):
    """Sign-in or sign-up failed."""

    title = "Erro de autenticação"


class CatalogError(KMCarsError):
    """The vehicle catalog could not be fetched."""
