"""Deployment endpoints."""

import asyncio
import json
from typing import Annotated, AsyncIterator

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sse_starlette.sse import EventSourceResponse

from publisher.api.deps import (
    EventsDep,
    FactoryDep,
    GuardDep,
    ProjectDep,
    StoreDep,
    TokenManagerDep,
    UserDep,
)
from publisher.config import settings
from publisher.core.events import Event, EventBus
from publisher.core.exceptions import ProjectNotFoundError
from publisher.core.orchestrator import DeploymentOrchestrator, create_orchestrator
from publisher.core.store import ProjectStore
from publisher.models.deployment import (
    CredentialInfo,
    DeploymentRequest,
    DeploymentResult,
    UpgradePrompt,
)
from publisher.models.project import DeploymentStatus
from publisher.models.provider import DeploymentInfo, DeploymentLogEntry
from publisher.providers.factory import ProviderFactory
from publisher.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)

# Seconds between keepalive messages on idle event streams
KEEPALIVE_INTERVAL = 30.0


class DeployRequestBody(BaseModel):
    """Request to publish a project's generated files."""

    project_id: str
    project_name: str
    template_key: str
    files: dict[str, str]
    is_private: bool = False
    organization_name: str | None = None
    repository_credential: str | None = Field(default=None, repr=False)
    hosting_credential: str | None = Field(default=None, repr=False)


class DeploymentResponse(BaseModel):
    """Outcome of a deployment request."""

    success: bool
    project_id: str
    result: DeploymentResult
    used_system_credential: bool
    remaining_system_deployments: int | None = None
    upgrade: UpgradePrompt | None = None


class CredentialBody(BaseModel):
    """A Vercel token supplied by the user."""

    hosting_credential: str = Field(..., min_length=1, repr=False)


class CredentialInfoResponse(BaseModel):
    credential_info: CredentialInfo
    upgrade: UpgradePrompt


class ValidateCredentialResponse(BaseModel):
    valid: bool


class CancelResponse(BaseModel):
    success: bool
    deployment_id: str
    message: str


def _read_orchestrator(
    store: ProjectStore, factory: ProviderFactory, hosting_token: str
) -> DeploymentOrchestrator:
    # Status and cancel calls never touch the repository provider
    return DeploymentOrchestrator(
        repository=factory.repository(settings.github_token),
        hosting=factory.hosting(hosting_token),
        store=store,
    )


async def _close(orchestrator: DeploymentOrchestrator) -> None:
    await orchestrator.repository.aclose()
    await orchestrator.hosting.aclose()


@router.post(
    "",
    response_model=DeploymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a project to GitHub and Vercel",
)
async def deploy_project(
    body: DeployRequestBody,
    user_id: UserDep,
    store: StoreDep,
    events: EventsDep,
    factory: FactoryDep,
    guard: GuardDep,
    tokens: TokenManagerDep,
) -> DeploymentResponse | JSONResponse:
    """Run the deployment pipeline for a project owned by the caller.

    Credential and quota errors are returned as 400 by the application error
    handler. A failed pipeline returns 500 with the step trail.
    """
    project = await store.get_project(body.project_id)
    if not project or project.user_id != user_id:
        raise ProjectNotFoundError(body.project_id)

    async with guard.hold(project.id):
        selection = await tokens.select_credential(
            user_id, body.hosting_credential, project_id=project.id
        )
        logger.info(
            "deployments.credential_selected",
            project_id=project.id,
            system_credential=selection.is_system_credential,
        )

        succeeded = False
        try:
            orchestrator = create_orchestrator(
                store,
                hosting_token=selection.token,
                repository_token=body.repository_credential,
                factory=factory,
                events=events,
            )
            request = DeploymentRequest(
                user_id=user_id,
                **body.model_dump(),
            )
            try:
                result = await orchestrator.deploy(request)
            finally:
                await _close(orchestrator)
            succeeded = result.success
        finally:
            # A reserved system slot is only kept by a successful deployment
            if not succeeded:
                await tokens.release_credential(user_id, project.id, selection)

    if not result.success:
        response = DeploymentResponse(
            success=False,
            project_id=project.id,
            result=result,
            used_system_credential=selection.is_system_credential,
            remaining_system_deployments=selection.remaining_system_deployments,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=response.model_dump(mode="json"),
        )

    await tokens.track_deployment(user_id, project.id, selection.is_system_credential)
    upgrade = await tokens.should_prompt_upgrade(user_id)

    remaining = selection.remaining_system_deployments
    return DeploymentResponse(
        success=True,
        project_id=project.id,
        result=result,
        used_system_credential=selection.is_system_credential,
        remaining_system_deployments=remaining - 1 if remaining is not None else None,
        upgrade=upgrade,
    )


@router.get(
    "/credentials",
    response_model=CredentialInfoResponse,
    summary="Get the caller's hosting credential state and free deployments left",
)
async def get_credential_info(
    user_id: UserDep,
    tokens: TokenManagerDep,
) -> CredentialInfoResponse:
    return CredentialInfoResponse(
        credential_info=await tokens.get_credential_info(user_id),
        upgrade=await tokens.should_prompt_upgrade(user_id),
    )


@router.put(
    "/credentials",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Save the caller's personal Vercel token",
)
async def save_credential(
    body: CredentialBody,
    user_id: UserDep,
    tokens: TokenManagerDep,
) -> None:
    await tokens.save_personal_credential(user_id, body.hosting_credential)


@router.delete(
    "/credentials",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove the caller's personal Vercel token",
)
async def remove_credential(
    user_id: UserDep,
    tokens: TokenManagerDep,
) -> None:
    await tokens.remove_personal_credential(user_id)


@router.post(
    "/credentials/validate",
    response_model=ValidateCredentialResponse,
    summary="Check a Vercel token without saving it",
)
async def validate_credential(
    body: CredentialBody,
    user_id: UserDep,
    tokens: TokenManagerDep,
) -> ValidateCredentialResponse:
    valid = await tokens.hosting.validate_credential(body.hosting_credential)
    return ValidateCredentialResponse(valid=valid)


@router.delete(
    "/hosting/{deployment_id}",
    response_model=CancelResponse,
    summary="Cancel a running Vercel deployment",
)
async def cancel_deployment(
    deployment_id: str,
    body: CredentialBody,
    user_id: UserDep,
    store: StoreDep,
    factory: FactoryDep,
) -> CancelResponse | JSONResponse:
    orchestrator = _read_orchestrator(store, factory, body.hosting_credential)
    try:
        cancelled = await orchestrator.cancel_deployment(deployment_id)
    finally:
        await _close(orchestrator)

    if not cancelled:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=CancelResponse(
                success=False,
                deployment_id=deployment_id,
                message="Failed to cancel deployment",
            ).model_dump(),
        )
    return CancelResponse(
        success=True,
        deployment_id=deployment_id,
        message="Deployment cancelled successfully",
    )


@router.get(
    "/hosting/{deployment_id}",
    response_model=DeploymentInfo,
    summary="Get one Vercel deployment",
)
async def get_hosting_deployment(
    deployment_id: str,
    user_id: UserDep,
    store: StoreDep,
    factory: FactoryDep,
    tokens: TokenManagerDep,
) -> DeploymentInfo:
    token = await tokens.read_credential(user_id)
    orchestrator = _read_orchestrator(store, factory, token)
    try:
        return await orchestrator.get_hosting_deployment(deployment_id)
    finally:
        await _close(orchestrator)


@router.get(
    "/hosting/{deployment_id}/logs",
    response_model=list[DeploymentLogEntry],
    summary="Get the build and runtime events of a Vercel deployment",
)
async def get_deployment_logs(
    deployment_id: str,
    user_id: UserDep,
    store: StoreDep,
    factory: FactoryDep,
    tokens: TokenManagerDep,
) -> list[DeploymentLogEntry]:
    token = await tokens.read_credential(user_id)
    orchestrator = _read_orchestrator(store, factory, token)
    try:
        return await orchestrator.get_deployment_logs(deployment_id)
    finally:
        await _close(orchestrator)


@router.get(
    "/{project_id}/deployments",
    response_model=list[DeploymentInfo],
    summary="List a project's Vercel deployments, newest first",
)
async def list_project_deployments(
    project: ProjectDep,
    user_id: UserDep,
    store: StoreDep,
    factory: FactoryDep,
    tokens: TokenManagerDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[DeploymentInfo]:
    token = await tokens.read_credential(user_id)
    orchestrator = _read_orchestrator(store, factory, token)
    try:
        return await orchestrator.list_deployments(project.id, limit=limit)
    finally:
        await _close(orchestrator)


@router.get(
    "/{project_id}/status",
    response_model=DeploymentStatus,
    summary="Get a project's repository and hosting status",
)
async def get_deployment_status(
    project: ProjectDep,
    user_id: UserDep,
    store: StoreDep,
    factory: FactoryDep,
    tokens: TokenManagerDep,
) -> DeploymentStatus:
    token = await tokens.read_credential(user_id)
    orchestrator = _read_orchestrator(store, factory, token)
    try:
        return await orchestrator.get_deployment_status(project.id)
    finally:
        await _close(orchestrator)


async def stream_events(
    project_id: str,
    events: EventBus,
    keepalive: float = KEEPALIVE_INTERVAL,
) -> AsyncIterator[dict[str, str]]:
    """Relay a project's events as SSE messages until a terminal event."""
    queue = events.subscribe(project_id)

    try:
        yield {
            "event": "connected",
            "data": json.dumps({"project_id": project_id}),
        }

        while True:
            try:
                event: Event = await asyncio.wait_for(queue.get(), timeout=keepalive)
                yield {
                    "event": event.event_type,
                    "data": json.dumps(event.data, default=str),
                }
                if event.is_terminal:
                    break

            except asyncio.TimeoutError:
                yield {"event": "keepalive", "data": "{}"}

    finally:
        events.unsubscribe(project_id, queue)


@router.get(
    "/{project_id}/events",
    summary="Stream deployment step events (SSE)",
)
async def stream_deployment_events(
    project: ProjectDep,
    events: EventsDep,
) -> EventSourceResponse:
    """Stream step transitions for a project using Server-Sent Events."""
    return EventSourceResponse(stream_events(project.id, events))
