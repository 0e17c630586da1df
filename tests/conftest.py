"""Pytest configuration and fixtures."""

import asyncio
from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient

from publisher.api.deps import (
    DeploymentGuard,
    get_credentials,
    get_deployment_guard,
    get_events,
    get_provider_factory,
    get_store,
)
from publisher.config import settings
from publisher.core.events import EventBus
from publisher.core.exceptions import ProviderError
from publisher.core.orchestrator import DeploymentOrchestrator
from publisher.core.store import InMemoryCredentialStore, InMemoryProjectStore
from publisher.main import app
from publisher.models.deployment import DeploymentRequest
from publisher.models.project import ProjectRecord
from publisher.models.provider import (
    CommitInfo,
    DeploymentInfo,
    DeploymentLogEntry,
    HostingProjectInfo,
    RepositoryInfo,
    RepositorySpec,
)
from publisher.providers.base import HostingProvider, RepositoryProvider

SYSTEM_TOKEN = "system-token"
PERSONAL_TOKEN = "personal-token"


class _CallRecorder:
    """Records provider calls and raises the error injected for a call name."""

    def __init__(self):
        self.calls: list[tuple[str, tuple]] = []
        self.fail: dict[str, Exception] = {}

    async def _record(self, operation: str, *args) -> None:
        # Yield so concurrent runs interleave
        await asyncio.sleep(0)
        self.calls.append((operation, args))
        if operation in self.fail:
            raise self.fail[operation]

    def called(self, operation: str) -> bool:
        return any(name == operation for name, _ in self.calls)

    def args_of(self, operation: str) -> tuple:
        return next(args for name, args in self.calls if name == operation)


class FakeRepositoryProvider(_CallRecorder, RepositoryProvider):
    """In-process stand-in for GitHub."""

    def __init__(self, owner: str = "octo"):
        super().__init__()
        self.owner = owner
        self.accessible_organizations: set[str] = {"acme"}

    @property
    def name(self) -> str:
        return "FakeGit"

    async def organization_accessible(self, organization: str) -> bool:
        await self._record("organization_accessible", organization)
        return organization in self.accessible_organizations

    async def create_repository(self, spec: RepositorySpec) -> RepositoryInfo:
        await self._record("create_repository", spec)
        return self._info(self.owner, spec)

    async def create_repository_in_organization(
        self, organization: str, spec: RepositorySpec
    ) -> RepositoryInfo:
        await self._record("create_repository_in_organization", organization, spec)
        return self._info(organization, spec)

    async def commit_files(self, owner, name, files, message, branch="main") -> CommitInfo:
        await self._record("commit_files", owner, name, files, message, branch)
        return CommitInfo(sha="abc123", file_count=len(files))

    @staticmethod
    def _info(owner: str, spec: RepositorySpec) -> RepositoryInfo:
        return RepositoryInfo(
            owner=owner,
            name=spec.name,
            full_name=f"{owner}/{spec.name}",
            url=f"https://github.com/{owner}/{spec.name}",
        )


class FakeHostingProvider(_CallRecorder, HostingProvider):
    """In-process stand-in for Vercel."""

    def __init__(self):
        super().__init__()
        self.valid_tokens: set[str] = {SYSTEM_TOKEN, PERSONAL_TOKEN}
        self.cancel_result = True
        self.deployments: list[DeploymentInfo] = []
        self.logs: dict[str, list[DeploymentLogEntry]] = {}

    @property
    def name(self) -> str:
        return "FakeHost"

    async def create_project(self, name, framework, repository_full_name) -> HostingProjectInfo:
        await self._record("create_project", name, framework, repository_full_name)
        return HostingProjectInfo(
            project_id=f"prj_{name}",
            name=name,
            linked_repository=repository_full_name,
        )

    async def link_repository(self, project_id, repository_full_name) -> HostingProjectInfo:
        await self._record("link_repository", project_id, repository_full_name)
        return HostingProjectInfo(
            project_id=project_id,
            name=project_id,
            linked_repository=repository_full_name,
        )

    async def create_deployment(
        self, project_id, name, repository_full_name, ref
    ) -> DeploymentInfo:
        await self._record("create_deployment", project_id, name, repository_full_name, ref)
        deployment = DeploymentInfo(
            deployment_id=f"dpl_{project_id}",
            deployment_url=f"https://{project_id}.vercel.app",
            state="QUEUED",
            created_at=datetime.utcnow(),
        )
        self.deployments.insert(0, deployment)
        return deployment

    async def get_deployment(self, deployment_id) -> DeploymentInfo:
        await self._record("get_deployment", deployment_id)
        return DeploymentInfo(
            deployment_id=deployment_id,
            deployment_url=f"https://{deployment_id}.vercel.app",
            state="BUILDING",
        )

    async def get_deployment_logs(self, deployment_id) -> list[DeploymentLogEntry]:
        await self._record("get_deployment_logs", deployment_id)
        return self.logs.get(deployment_id, [])

    async def list_project_deployments(self, project_id, limit=10) -> list[DeploymentInfo]:
        await self._record("list_project_deployments", project_id, limit)
        return self.deployments[:limit]

    async def cancel_deployment(self, deployment_id) -> bool:
        await self._record("cancel_deployment", deployment_id)
        return self.cancel_result

    async def validate_credential(self, token) -> bool:
        await self._record("validate_credential", token)
        return token in self.valid_tokens


class FakeProviderFactory:
    """Hands out the shared fakes and remembers which tokens were requested."""

    def __init__(self, repository: FakeRepositoryProvider, hosting: FakeHostingProvider):
        self.repository_provider = repository
        self.hosting_provider = hosting
        self.repository_tokens: list[str] = []
        self.hosting_tokens: list[str] = []

    def repository(self, token: str) -> FakeRepositoryProvider:
        self.repository_tokens.append(token)
        return self.repository_provider

    def hosting(self, token: str) -> FakeHostingProvider:
        self.hosting_tokens.append(token)
        return self.hosting_provider


@pytest.fixture(autouse=True)
def platform_tokens(monkeypatch):
    """Configure platform credentials and the free deployment limit."""
    monkeypatch.setattr(settings, "github_token", "gh-token")
    monkeypatch.setattr(settings, "vercel_token", SYSTEM_TOKEN)
    monkeypatch.setattr(settings, "vercel_team_id", None)
    monkeypatch.setattr(settings, "system_deployment_limit", 3)


@pytest.fixture
def provider_error() -> ProviderError:
    return ProviderError("FakeHost", "test operation", "500 boom", status_code=500)


@pytest.fixture
def repository() -> FakeRepositoryProvider:
    return FakeRepositoryProvider()


@pytest.fixture
def hosting() -> FakeHostingProvider:
    return FakeHostingProvider()


@pytest.fixture
def factory(repository, hosting) -> FakeProviderFactory:
    return FakeProviderFactory(repository, hosting)


@pytest.fixture
def project_store() -> InMemoryProjectStore:
    """Create a fresh project store for tests."""
    return InMemoryProjectStore()


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    """Create a fresh credential store for tests."""
    return InMemoryCredentialStore()


@pytest.fixture
def events() -> EventBus:
    """Create a fresh event bus."""
    return EventBus()


@pytest.fixture
def orchestrator(repository, hosting, project_store, events) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(
        repository=repository,
        hosting=hosting,
        store=project_store,
        events=events,
    )


@pytest.fixture
async def project(project_store) -> ProjectRecord:
    """A project owned by user-1."""
    return await project_store.create_project(
        ProjectRecord(id="proj-1", user_id="user-1", name="Todo App")
    )


@pytest.fixture
def sample_files() -> dict[str, str]:
    return {
        "package.json": '{"name": "todo-app", "private": true}',
        "app/page.tsx": "export default function Page() { return <h1>Todo</h1>; }",
        "README.md": "# Todo App\n",
    }


@pytest.fixture
def sample_request(sample_files) -> DeploymentRequest:
    return DeploymentRequest(
        project_id="proj-1",
        project_name="Todo App",
        template_key="nextjs",
        files=sample_files,
        user_id="user-1",
    )


@pytest.fixture
def deployment_guard() -> DeploymentGuard:
    return DeploymentGuard()


@pytest.fixture
async def client(
    project_store, credential_store, events, factory, deployment_guard
) -> AsyncClient:
    """Create an async test client wired to fresh stores and fake providers."""

    async def override_store():
        return project_store

    async def override_credentials():
        return credential_store

    async def override_events():
        return events

    async def override_factory():
        return factory

    async def override_guard():
        return deployment_guard

    app.dependency_overrides[get_store] = override_store
    app.dependency_overrides[get_credentials] = override_credentials
    app.dependency_overrides[get_events] = override_events
    app.dependency_overrides[get_provider_factory] = override_factory
    app.dependency_overrides[get_deployment_guard] = override_guard

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-ID": "user-1"},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
