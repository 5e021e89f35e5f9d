"""Error taxonomy for the Copy Studio backend.

Every error carries the HTTP status the API layer should answer with so the
routers never need to translate exceptions by hand.
"""

from __future__ import annotations


class CopyStudioError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(CopyStudioError):
    """A required setting (usually the provider credential) is missing."""

    status_code = 503


class InvalidRequest(CopyStudioError):
    """The request payload is missing required fields or is malformed."""

    status_code = 400


class ProviderCallFailure(CopyStudioError):
    """One call to the LLM provider failed or returned unusable content."""


class TaskFailure(CopyStudioError):
    """A unit of work exhausted its retry budget."""

    def __init__(self, label: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"{label} failed after {attempts} attempt(s): {last_error}")
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


class BatchFailure(CopyStudioError):
    """A task the aggregate document depends on could not be completed."""

    status_code = 500


class PhaseGateError(CopyStudioError):
    """A workflow transition was attempted before its prerequisites were met."""

    status_code = 409


class LaunchNotFound(CopyStudioError):
    status_code = 404

    def __init__(self, launch_id: str) -> None:
        super().__init__(f"Launch '{launch_id}' not found")
        self.launch_id = launch_id


class ProductNotFound(CopyStudioError):
    status_code = 404

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product '{product_id}' not found")
        self.product_id = product_id


class CorruptLaunch(CopyStudioError):
    """A stored launch document could not be parsed."""

    def __init__(self, launch_id: str, reason: str) -> None:
        super().__init__(f"Launch '{launch_id}' could not be read: {reason}")
        self.launch_id = launch_id


class DocumentNotFound(CopyStudioError):
    status_code = 404

    def __init__(self, path: str) -> None:
        super().__init__(f"Training document '{path}' not found")
        self.path = path
