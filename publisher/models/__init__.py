"""Data models for App Publisher."""

from publisher.models.deployment import (
    CredentialInfo,
    CredentialSelection,
    DeploymentRequest,
    DeploymentResult,
    DeploymentStep,
    StepRecord,
    StepStatus,
    UpgradePrompt,
    sanitize_repository_name,
    step_message,
)
from publisher.models.project import (
    DeploymentStatus,
    HostingStatus,
    ProjectDeploymentFields,
    ProjectRecord,
    RepositoryStatus,
)
from publisher.models.provider import (
    CommitInfo,
    DeploymentInfo,
    DeploymentLogEntry,
    HostingProjectInfo,
    RepositoryInfo,
    RepositorySpec,
)

__all__ = [
    # Deployment models
    "DeploymentRequest",
    "DeploymentResult",
    "DeploymentStep",
    "StepRecord",
    "StepStatus",
    "sanitize_repository_name",
    "step_message",
    # Credential models
    "CredentialInfo",
    "CredentialSelection",
    "UpgradePrompt",
    # Project models
    "ProjectRecord",
    "ProjectDeploymentFields",
    "DeploymentStatus",
    "RepositoryStatus",
    "HostingStatus",
    # Provider models
    "RepositorySpec",
    "RepositoryInfo",
    "CommitInfo",
    "HostingProjectInfo",
    "DeploymentInfo",
    "DeploymentLogEntry",
]
