"""Project and credential persistence.

The pipeline only depends on the ``ProjectStore`` and ``CredentialStore``
interfaces. The in-memory implementations back development and tests; a
database-backed store implements the same methods.
"""

import asyncio
from abc import ABC, abstractmethod
from collections import defaultdict

from publisher.core.exceptions import PersistenceError
from publisher.models.project import ProjectDeploymentFields, ProjectRecord


class ProjectStore(ABC):
    """Reads and updates project records."""

    @abstractmethod
    async def create_project(self, project: ProjectRecord) -> ProjectRecord:
        """Insert or replace a project record."""
        pass

    @abstractmethod
    async def get_project(self, project_id: str) -> ProjectRecord | None:
        """Get a project by ID."""
        pass

    @abstractmethod
    async def update_deployment_fields(
        self, project_id: str, fields: ProjectDeploymentFields
    ) -> ProjectRecord:
        """Write a run's deployment outputs. Raises ``PersistenceError``."""
        pass

    @abstractmethod
    async def delete_project(self, project_id: str) -> bool:
        """Delete a project. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def list_projects(self, user_id: str | None = None) -> list[ProjectRecord]:
        """List projects, newest first, optionally only those owned by ``user_id``."""
        pass


class CredentialStore(ABC):
    """Per-user personal hosting credentials and system-credential usage.

    Usage counts both recorded deployments and reserved slots of deployments
    still running, so concurrent requests cannot overshoot the limit.
    """

    @abstractmethod
    async def get_personal_credential(self, user_id: str) -> str | None:
        pass

    @abstractmethod
    async def save_personal_credential(self, user_id: str, token: str) -> None:
        pass

    @abstractmethod
    async def remove_personal_credential(self, user_id: str) -> None:
        pass

    @abstractmethod
    async def get_system_usage(self, user_id: str) -> int:
        """Recorded plus reserved system-credential deployments of the user."""
        pass

    @abstractmethod
    async def reserve_system_usage(
        self, user_id: str, project_id: str | None, limit: int
    ) -> int | None:
        """Atomically take one slot if usage is below ``limit``.

        Returns the usage including the new slot, or None when the limit is
        already reached.
        """
        pass

    @abstractmethod
    async def release_system_usage(self, user_id: str, project_id: str | None) -> None:
        """Give back a slot reserved for a deployment that did not succeed."""
        pass

    @abstractmethod
    async def record_system_usage(self, user_id: str, project_id: str) -> int:
        """Count one system-credential deployment. Returns the new total.

        Consumes the reservation made for ``project_id``, if there is one.
        """
        pass


class InMemoryProjectStore(ProjectStore):
    """Keeps project records in a dict.

    Note: For production, this should be backed by a database.
    """

    def __init__(self):
        self._projects: dict[str, ProjectRecord] = {}
        self._lock = asyncio.Lock()

    async def create_project(self, project: ProjectRecord) -> ProjectRecord:
        """Insert or replace a project record."""
        self._projects[project.id] = project
        return project

    async def get_project(self, project_id: str) -> ProjectRecord | None:
        return self._projects.get(project_id)

    async def update_deployment_fields(
        self, project_id: str, fields: ProjectDeploymentFields
    ) -> ProjectRecord:
        async with self._lock:
            project = self._projects.get(project_id)
            if project is None:
                raise PersistenceError(project_id, "project not found")
            project.apply_deployment_fields(fields)
            return project

    async def delete_project(self, project_id: str) -> bool:
        """Delete a project."""
        if project_id in self._projects:
            del self._projects[project_id]
            return True
        return False

    async def list_projects(self, user_id: str | None = None) -> list[ProjectRecord]:
        """List projects, newest first."""
        projects = [
            p for p in self._projects.values() if user_id is None or p.user_id == user_id
        ]
        projects.sort(key=lambda p: p.created_at, reverse=True)
        return projects


class InMemoryCredentialStore(CredentialStore):
    """Keeps personal credentials and usage counters in dicts."""

    def __init__(self):
        self._credentials: dict[str, str] = {}
        self._usage: dict[str, list[str]] = defaultdict(list)
        self._reserved: dict[str, list[str | None]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def get_personal_credential(self, user_id: str) -> str | None:
        return self._credentials.get(user_id)

    async def save_personal_credential(self, user_id: str, token: str) -> None:
        self._credentials[user_id] = token

    async def remove_personal_credential(self, user_id: str) -> None:
        self._credentials.pop(user_id, None)

    def _used(self, user_id: str) -> int:
        return len(self._usage.get(user_id, ())) + len(self._reserved.get(user_id, ()))

    async def get_system_usage(self, user_id: str) -> int:
        return self._used(user_id)

    async def reserve_system_usage(
        self, user_id: str, project_id: str | None, limit: int
    ) -> int | None:
        async with self._lock:
            if self._used(user_id) >= limit:
                return None
            self._reserved[user_id].append(project_id)
            return self._used(user_id)

    async def release_system_usage(self, user_id: str, project_id: str | None) -> None:
        async with self._lock:
            reserved = self._reserved.get(user_id, [])
            if project_id in reserved:
                reserved.remove(project_id)

    async def record_system_usage(self, user_id: str, project_id: str) -> int:
        async with self._lock:
            reserved = self._reserved.get(user_id, [])
            if project_id in reserved:
                reserved.remove(project_id)
            self._usage[user_id].append(project_id)
            return self._used(user_id)


# Singleton instances
_project_store: InMemoryProjectStore | None = None
_credential_store: InMemoryCredentialStore | None = None


def get_project_store() -> InMemoryProjectStore:
    """Get the project store singleton."""
    global _project_store
    if _project_store is None:
        _project_store = InMemoryProjectStore()
    return _project_store


def get_credential_store() -> InMemoryCredentialStore:
    """Get the credential store singleton."""
    global _credential_store
    if _credential_store is None:
        _credential_store = InMemoryCredentialStore()
    return _credential_store
