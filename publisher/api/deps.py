"""Dependency injection for API endpoints."""

from contextlib import asynccontextmanager
from typing import Annotated, AsyncIterator

from fastapi import Depends, Header, HTTPException, status

from publisher.config import settings
from publisher.core.credentials import TokenManager
from publisher.core.events import EventBus, get_event_bus
from publisher.core.store import (
    InMemoryCredentialStore,
    InMemoryProjectStore,
    get_credential_store,
    get_project_store,
)
from publisher.models.project import ProjectRecord
from publisher.providers.factory import ProviderFactory


class DeploymentGuard:
    """Allows at most one in-flight deployment per project in this process."""

    def __init__(self):
        self._in_flight: set[str] = set()

    @asynccontextmanager
    async def hold(self, project_id: str) -> AsyncIterator[None]:
        if project_id in self._in_flight:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"A deployment is already running for project {project_id}",
            )
        self._in_flight.add(project_id)
        try:
            yield
        finally:
            self._in_flight.discard(project_id)


_deployment_guard = DeploymentGuard()


async def get_store() -> InMemoryProjectStore:
    """Get the project store."""
    return get_project_store()


async def get_credentials() -> InMemoryCredentialStore:
    """Get the credential store."""
    return get_credential_store()


async def get_events() -> EventBus:
    """Get the event bus."""
    return get_event_bus()


async def get_provider_factory() -> ProviderFactory:
    """Get the factory that builds GitHub and Vercel clients."""
    return ProviderFactory()


async def get_deployment_guard() -> DeploymentGuard:
    return _deployment_guard


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """User id forwarded by the upstream auth gateway."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-ID header",
        )
    return x_user_id


async def get_token_manager(
    credentials: Annotated[InMemoryCredentialStore, Depends(get_credentials)],
    factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
) -> AsyncIterator[TokenManager]:
    """Token manager whose validation client is closed after the request."""
    hosting = factory.hosting(settings.vercel_token)
    try:
        yield TokenManager(credentials, hosting)
    finally:
        await hosting.aclose()


async def get_owned_project(
    project_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    store: Annotated[InMemoryProjectStore, Depends(get_store)],
) -> ProjectRecord:
    """Get a project owned by the caller or raise 404."""
    project = await store.get_project(project_id)
    if not project or project.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project not found or unauthorized: {project_id}",
        )
    return project


# Type aliases for cleaner signatures
StoreDep = Annotated[InMemoryProjectStore, Depends(get_store)]
EventsDep = Annotated[EventBus, Depends(get_events)]
FactoryDep = Annotated[ProviderFactory, Depends(get_provider_factory)]
GuardDep = Annotated[DeploymentGuard, Depends(get_deployment_guard)]
UserDep = Annotated[str, Depends(get_current_user_id)]
TokenManagerDep = Annotated[TokenManager, Depends(get_token_manager)]
ProjectDep = Annotated[ProjectRecord, Depends(get_owned_project)]
