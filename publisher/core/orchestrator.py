"""Deployment Orchestrator.

Publishes a generated application: creates a GitHub repository, commits the
files, creates a Vercel project linked to the repository and triggers its
first deployment.
"""

from dataclasses import dataclass, field

from publisher.config import settings
from publisher.core.events import EventBus
from publisher.core.exceptions import (
    CredentialError,
    PersistenceError,
    ProjectNotFoundError,
    PublisherError,
    ValidationError,
)
from publisher.core.store import ProjectStore
from publisher.models.deployment import (
    DeploymentRequest,
    DeploymentResult,
    DeploymentStep,
    StepRecord,
    StepStatus,
    step_message,
)
from publisher.models.project import DeploymentStatus, ProjectDeploymentFields
from publisher.models.provider import (
    DeploymentInfo,
    DeploymentLogEntry,
    HostingProjectInfo,
    RepositoryInfo,
    RepositorySpec,
)
from publisher.providers.base import HostingProvider, RepositoryProvider
from publisher.providers.factory import ProviderFactory
from publisher.utils.logging import get_logger

MIN_PROJECT_NAME_LENGTH = 3


@dataclass
class StepOutcome:
    """Result of running one step: its record and, on failure, the error."""

    record: StepRecord
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DeploymentRun:
    """State of one ``deploy`` call.

    Each step reads what earlier steps produced and adds its own output.
    """

    request: DeploymentRequest
    steps: list[StepRecord] = field(default_factory=list)
    repository: RepositoryInfo | None = None
    hosting_project: HostingProjectInfo | None = None
    deployment: DeploymentInfo | None = None
    deployment_status: DeploymentInfo | None = None


class DeploymentOrchestrator:
    """Runs the seven-step deployment pipeline.

    Pipeline steps:
    1. validate - check the request and organization access
    2. create_repository - create the GitHub repository
    3. push_files - commit every file in one commit
    4. create_hosting_project - create the Vercel project
    5. link_repository - connect the Vercel project to the repository
    6. trigger_deployment - deploy the default branch
    7. monitor_deployment - read the initial deployment status once

    The first failing step ends the run. ``deploy`` never raises; failures
    are reported through the returned ``DeploymentResult``.
    """

    def __init__(
        self,
        repository: RepositoryProvider,
        hosting: HostingProvider,
        store: ProjectStore,
        events: EventBus | None = None,
    ):
        self.repository = repository
        self.hosting = hosting
        self.store = store
        self.events = events
        self.logger = get_logger("orchestrator")

        self._handlers = {
            DeploymentStep.VALIDATE: self._validate,
            DeploymentStep.CREATE_REPOSITORY: self._create_repository,
            DeploymentStep.PUSH_FILES: self._push_files,
            DeploymentStep.CREATE_HOSTING_PROJECT: self._create_hosting_project,
            DeploymentStep.LINK_REPOSITORY: self._link_repository,
            DeploymentStep.TRIGGER_DEPLOYMENT: self._trigger_deployment,
            DeploymentStep.MONITOR_DEPLOYMENT: self._monitor_deployment,
        }

    async def deploy(self, request: DeploymentRequest) -> DeploymentResult:
        """Run the pipeline for one request.

        Args:
            request: The project files and deployment options

        Returns:
            The result with the full step trail, whether or not the run
            succeeded
        """
        run = DeploymentRun(request=request)
        self.logger.info(
            "orchestrator.deployment.started",
            project_id=request.project_id,
            project_name=request.project_name,
            files=len(request.files or {}),
        )

        for step in DeploymentStep:
            outcome = await self._run_step(run, step)
            if not outcome.ok:
                return await self._failed(run, outcome)

        persisted, persistence_error = await self._persist(run)

        self.logger.info(
            "orchestrator.deployment.completed",
            project_id=request.project_id,
            repository=run.repository.full_name,
            deployment_url=run.deployment.deployment_url,
            persisted=persisted,
        )
        if self.events:
            await self.events.publish_deployment_complete(
                request.project_id, run.deployment.deployment_url
            )

        status = run.deployment_status or run.deployment
        return DeploymentResult(
            success=True,
            repository_url=run.repository.url,
            repository_full_name=run.repository.full_name,
            hosting_project_id=run.hosting_project.project_id,
            deployment_id=run.deployment.deployment_id,
            deployment_url=run.deployment.deployment_url,
            deployment_state=status.state,
            error=persistence_error,
            persisted=persisted,
            steps=list(run.steps),
        )

    async def _run_step(self, run: DeploymentRun, step: DeploymentStep) -> StepOutcome:
        """Execute one step, recording its transition in the run's trail."""
        project_id = run.request.project_id
        record = StepRecord(step=step, message=step_message(step, StepStatus.IN_PROGRESS))
        run.steps.append(record)
        self.logger.info("orchestrator.step.started", project_id=project_id, step=step.value)
        if self.events:
            await self.events.publish_step(project_id, record)

        try:
            await self._handlers[step](run)
        except PublisherError as e:
            error = e.message
        except Exception as e:
            self.logger.exception(
                "orchestrator.step.unexpected_error",
                project_id=project_id,
                step=step.value,
            )
            error = str(e) or type(e).__name__
        else:
            record.finish(StepStatus.COMPLETED)
            self.logger.info(
                "orchestrator.step.completed",
                project_id=project_id,
                step=step.value,
                duration_ms=record.duration_ms,
            )
            if self.events:
                await self.events.publish_step(project_id, record)
            return StepOutcome(record=record)

        record.finish(StepStatus.FAILED, error=error)
        self.logger.error(
            "orchestrator.step.failed",
            project_id=project_id,
            step=step.value,
            error=error,
        )
        if self.events:
            await self.events.publish_step(project_id, record)
        return StepOutcome(record=record, error=error)

    async def _failed(self, run: DeploymentRun, outcome: StepOutcome) -> DeploymentResult:
        request = run.request
        self.logger.error(
            "orchestrator.deployment.failed",
            project_id=request.project_id,
            step=outcome.record.step.value,
            error=outcome.error,
        )
        if self.events:
            await self.events.publish_error(
                request.project_id, outcome.error, outcome.record.step.value
            )
        return DeploymentResult(
            success=False,
            repository_url=run.repository.url if run.repository else None,
            repository_full_name=run.repository.full_name if run.repository else None,
            hosting_project_id=(
                run.hosting_project.project_id if run.hosting_project else None
            ),
            error=outcome.error,
            steps=list(run.steps),
        )

    async def _validate(self, run: DeploymentRun) -> None:
        request = run.request
        if not request.project_name or len(request.project_name) < MIN_PROJECT_NAME_LENGTH:
            raise ValidationError(
                f"Project name must be at least {MIN_PROJECT_NAME_LENGTH} characters long"
            )
        if not request.files:
            raise ValidationError("Project files are required")
        if not request.template_key:
            raise ValidationError("Template key is required")

        if request.organization_name:
            if not await self.repository.organization_accessible(request.organization_name):
                raise ValidationError(
                    f"Organization {request.organization_name} does not exist "
                    "or user lacks access",
                    {"organization": request.organization_name},
                )

    async def _create_repository(self, run: DeploymentRun) -> None:
        request = run.request
        spec = RepositorySpec(
            name=request.repository_name,
            description=f"Generated project: {request.project_name}",
            private=request.is_private,
            auto_init=True,
        )
        if request.organization_name:
            run.repository = await self.repository.create_repository_in_organization(
                request.organization_name, spec
            )
        else:
            run.repository = await self.repository.create_repository(spec)

    async def _push_files(self, run: DeploymentRun) -> None:
        files = list(run.request.files.items())
        await self.repository.commit_files(
            run.repository.owner,
            run.repository.name,
            files,
            settings.commit_message,
            branch=settings.default_branch,
        )

    async def _create_hosting_project(self, run: DeploymentRun) -> None:
        request = run.request
        run.hosting_project = await self.hosting.create_project(
            name=request.repository_name,
            framework=self.hosting.framework_for_template(request.template_key),
            repository_full_name=run.repository.full_name,
        )

    async def _link_repository(self, run: DeploymentRun) -> None:
        await self.hosting.link_repository(
            run.hosting_project.project_id, run.repository.full_name
        )

    async def _trigger_deployment(self, run: DeploymentRun) -> None:
        run.deployment = await self.hosting.create_deployment(
            project_id=run.hosting_project.project_id,
            name=run.hosting_project.name,
            repository_full_name=run.repository.full_name,
            ref=settings.default_branch,
        )

    async def _monitor_deployment(self, run: DeploymentRun) -> None:
        # Single poll: the pipeline reports "deployment triggered", not "live"
        run.deployment_status = await self.hosting.get_deployment(
            run.deployment.deployment_id
        )
        self.logger.info(
            "orchestrator.deployment.status",
            project_id=run.request.project_id,
            deployment_id=run.deployment.deployment_id,
            state=run.deployment_status.state or "QUEUED",
        )

    async def _persist(self, run: DeploymentRun) -> tuple[bool, str | None]:
        """Write the run's outputs to the project record.

        Returns whether the write succeeded and, if not, the error message.
        """
        project_id = run.request.project_id
        fields = ProjectDeploymentFields(
            repository_url=run.repository.url,
            repository_created=True,
            hosting_project_id=run.hosting_project.project_id,
            hosting_connected=True,
            deployment_url=run.deployment.deployment_url,
        )
        try:
            await self.store.update_deployment_fields(project_id, fields)
        except PersistenceError as e:
            error = e.message
        except Exception as e:
            self.logger.exception("orchestrator.persist.unexpected_error", project_id=project_id)
            error = PersistenceError(project_id, str(e) or type(e).__name__).message
        else:
            self.logger.info("orchestrator.persist.completed", project_id=project_id)
            return True, None

        self.logger.error("orchestrator.persist.failed", project_id=project_id, error=error)
        return False, error

    async def get_deployment_status(self, project_id: str) -> DeploymentStatus:
        """Read a project's deployment state and its latest hosting deployment.

        Raises:
            ProjectNotFoundError: If the project does not exist
        """
        project = await self.store.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)

        latest = None
        if project.hosting_project_id:
            try:
                deployments = await self.hosting.list_project_deployments(
                    project.hosting_project_id, limit=1
                )
            except PublisherError as e:
                self.logger.warning(
                    "orchestrator.status.latest_deployment_unavailable",
                    project_id=project_id,
                    error=e.message,
                )
            else:
                latest = deployments[0] if deployments else None

        return DeploymentStatus.from_project(project, latest_deployment=latest)

    async def get_hosting_deployment(self, deployment_id: str) -> DeploymentInfo:
        """Read one hosting deployment by its provider id."""
        return await self.hosting.get_deployment(deployment_id)

    async def list_deployments(
        self, project_id: str, limit: int = 10
    ) -> list[DeploymentInfo]:
        """List the project's hosting deployments, newest first.

        A project that has not been deployed yet has none.

        Raises:
            ProjectNotFoundError: If the project does not exist
        """
        project = await self.store.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        if not project.hosting_project_id:
            return []
        return await self.hosting.list_project_deployments(
            project.hosting_project_id, limit=limit
        )

    async def get_deployment_logs(self, deployment_id: str) -> list[DeploymentLogEntry]:
        """Read the build and runtime events of a hosting deployment."""
        entries = await self.hosting.get_deployment_logs(deployment_id)
        self.logger.debug(
            "orchestrator.deployment.logs",
            deployment_id=deployment_id,
            entries=len(entries),
        )
        return entries

    async def cancel_deployment(self, deployment_id: str) -> bool:
        """Cancel a hosting deployment after the pipeline has triggered it."""
        cancelled = await self.hosting.cancel_deployment(deployment_id)
        self.logger.info(
            "orchestrator.deployment.cancel",
            deployment_id=deployment_id,
            cancelled=cancelled,
        )
        return cancelled


def create_orchestrator(
    store: ProjectStore,
    hosting_token: str,
    repository_token: str | None = None,
    factory: ProviderFactory | None = None,
    events: EventBus | None = None,
) -> DeploymentOrchestrator:
    """Build an orchestrator whose providers are bound to the given credentials.

    Falls back to the platform GitHub token when no repository token is given.

    Raises:
        CredentialError: If no GitHub token is available
    """
    factory = factory or ProviderFactory()
    token = repository_token or settings.github_token
    if not token:
        raise CredentialError(
            "GitHub access token is required. Set GITHUB_ACCESS_TOKEN or provide a token."
        )
    return DeploymentOrchestrator(
        repository=factory.repository(token),
        hosting=factory.hosting(hosting_token),
        store=store,
        events=events,
    )
