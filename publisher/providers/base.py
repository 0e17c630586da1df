"""Provider interfaces consumed by the deployment pipeline."""

from abc import ABC, abstractmethod

from publisher.models.provider import (
    CommitInfo,
    DeploymentInfo,
    DeploymentLogEntry,
    HostingProjectInfo,
    RepositoryInfo,
    RepositorySpec,
)

# Template keys known to build with a specific hosting framework preset.
# Unknown keys fall back to DEFAULT_FRAMEWORK; None lets the host auto-detect.
FRAMEWORK_BY_TEMPLATE: dict[str, str | None] = {
    "nextjs": "nextjs",
    "next-prisma-supabase": "nextjs",
    "next-saas-starter": "nextjs",
    "blog-platform": "nextjs",
    "ai-chat-app": "nextjs",
    "ai-saas-dashboard": "nextjs",
    "ecommerce-storefront": "nextjs",
    "landing-page": "nextjs",
    "dashboard-app": "nextjs",
    "react-typescript": "create-react-app",
    "vite-react": "vite",
    "vue": "vue",
    "static": None,
}
DEFAULT_FRAMEWORK = "nextjs"


class RepositoryProvider(ABC):
    """Source-control host that stores the generated code."""

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        return None

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name used in logs and errors."""
        pass

    @abstractmethod
    async def organization_accessible(self, organization: str) -> bool:
        """Whether the credential can create repositories in ``organization``."""
        pass

    @abstractmethod
    async def create_repository(self, spec: RepositorySpec) -> RepositoryInfo:
        """Create a repository owned by the authenticated user."""
        pass

    @abstractmethod
    async def create_repository_in_organization(
        self, organization: str, spec: RepositorySpec
    ) -> RepositoryInfo:
        """Create a repository inside an organization."""
        pass

    @abstractmethod
    async def commit_files(
        self,
        owner: str,
        name: str,
        files: list[tuple[str, str]],
        message: str,
        branch: str = "main",
    ) -> CommitInfo:
        """Commit all ``(path, content)`` pairs as a single commit."""
        pass


class HostingProvider(ABC):
    """Managed build/hosting platform that serves the deployed app."""

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        return None

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name used in logs and errors."""
        pass

    @abstractmethod
    async def create_project(
        self,
        name: str,
        framework: str | None,
        repository_full_name: str,
    ) -> HostingProjectInfo:
        """Create a hosting project pre-associated with a repository."""
        pass

    @abstractmethod
    async def link_repository(
        self, project_id: str, repository_full_name: str
    ) -> HostingProjectInfo:
        """Connect a hosting project to a repository (idempotent remotely)."""
        pass

    @abstractmethod
    async def create_deployment(
        self,
        project_id: str,
        name: str,
        repository_full_name: str,
        ref: str,
    ) -> DeploymentInfo:
        """Start a deployment of ``ref`` named after the hosting project."""
        pass

    @abstractmethod
    async def get_deployment(self, deployment_id: str) -> DeploymentInfo:
        """Fetch current deployment status."""
        pass

    @abstractmethod
    async def get_deployment_logs(self, deployment_id: str) -> list[DeploymentLogEntry]:
        """Fetch the build and runtime events of a deployment, oldest first."""
        pass

    @abstractmethod
    async def list_project_deployments(
        self, project_id: str, limit: int = 10
    ) -> list[DeploymentInfo]:
        """List recent deployments of a project, newest first."""
        pass

    @abstractmethod
    async def cancel_deployment(self, deployment_id: str) -> bool:
        """Cancel a running deployment. Returns False if it could not be cancelled."""
        pass

    @abstractmethod
    async def validate_credential(self, token: str) -> bool:
        """Check whether ``token`` is accepted by the provider."""
        pass

    def framework_for_template(self, template_key: str) -> str | None:
        """Map a template key to the hosting framework preset."""
        return FRAMEWORK_BY_TEMPLATE.get(template_key, DEFAULT_FRAMEWORK)
