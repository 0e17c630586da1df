"""Custom exceptions for App Publisher."""

from typing import Any


class PublisherError(Exception):
    """Base exception for App Publisher."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(PublisherError):
    """Malformed deployment request or inaccessible organization."""

    pass


class CredentialError(PublisherError):
    """No usable hosting credential, or a credential was rejected."""

    pass


class QuotaExceededError(CredentialError):
    """The user has used up their deployments on the system credential."""

    def __init__(self, limit: int, used: int):
        super().__init__(
            f"You've reached the limit of {limit} free deployments. "
            "Please add your own Vercel API token to continue.",
            {"limit": limit, "used": used},
        )
        self.limit = limit
        self.used = used


class ProviderError(PublisherError):
    """A repository or hosting provider call failed."""

    def __init__(
        self,
        provider: str,
        operation: str,
        message: str,
        status_code: int | None = None,
    ):
        details: dict[str, Any] = {"provider": provider, "operation": operation}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(f"{provider} {operation} failed: {message}", details)
        self.provider = provider
        self.operation = operation
        self.status_code = status_code


class PersistenceError(PublisherError):
    """Writing to the project store failed."""

    def __init__(self, project_id: str, message: str):
        super().__init__(
            f"Database update failed: {message}",
            {"project_id": project_id},
        )
        self.project_id = project_id


class ProjectNotFoundError(PublisherError):
    """Project not found."""

    def __init__(self, project_id: str):
        super().__init__(
            f"Project not found: {project_id}",
            {"project_id": project_id},
        )
