from __future__ import annotations


class StudyNotesError(Exception):
    """Base class for domain errors surfaced to the API layer."""


class ValidationError(StudyNotesError, ValueError):
    """A required field is missing or a note invariant would be broken."""


class NotFoundError(StudyNotesError, LookupError):
    """The referenced note or user does not exist (or is not visible)."""


class PermissionDeniedError(StudyNotesError, PermissionError):
    """A non-author attempted to edit or delete a note."""


class StorageError(StudyNotesError):
    """Uploading or removing a file in object storage failed."""


class BackendQueryError(StudyNotesError):
    """The backend rejected a query it cannot express or execute."""


class AuthCancelled(StudyNotesError):
    """The user dismissed the identity provider's sign-in prompt."""
