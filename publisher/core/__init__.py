"""Core functionality for App Publisher."""

from publisher.core.exceptions import (
    CredentialError,
    PersistenceError,
    ProjectNotFoundError,
    ProviderError,
    PublisherError,
    QuotaExceededError,
    ValidationError,
)
from publisher.core.events import Event, EventBus, get_event_bus
from publisher.core.store import (
    CredentialStore,
    InMemoryCredentialStore,
    InMemoryProjectStore,
    ProjectStore,
    get_credential_store,
    get_project_store,
)

__all__ = [
    "PublisherError",
    "ValidationError",
    "CredentialError",
    "QuotaExceededError",
    "ProviderError",
    "PersistenceError",
    "ProjectNotFoundError",
    "Event",
    "EventBus",
    "get_event_bus",
    "ProjectStore",
    "CredentialStore",
    "InMemoryProjectStore",
    "InMemoryCredentialStore",
    "get_project_store",
    "get_credential_store",
]
