"""Unit tests for data models."""

import pytest
from pydantic import ValidationError

from publisher.models.deployment import (
    CredentialInfo,
    DeploymentRequest,
    DeploymentResult,
    DeploymentStep,
    StepRecord,
    StepStatus,
    sanitize_repository_name,
    step_message,
)
from publisher.models.project import DeploymentStatus, ProjectDeploymentFields, ProjectRecord
from publisher.models.provider import DeploymentInfo


class TestSanitizeRepositoryName:
    """Tests for repository slug derivation."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("My App!", "my-app-"),
            ("todo-app", "todo-app"),
            ("Shop 2.0", "shop-2-0"),
            ("Café Menu", "caf--menu"),
            ("snake_case", "snake-case"),
        ],
    )
    def test_sanitize(self, name, expected):
        assert sanitize_repository_name(name) == expected

    @pytest.mark.parametrize("name", ["My App!", "Ünïcode Náme", "a/b\\c", "UPPER"])
    def test_sanitize_is_idempotent(self, name):
        once = sanitize_repository_name(name)
        assert sanitize_repository_name(once) == once

    def test_request_repository_name(self):
        request = DeploymentRequest(
            project_id="p",
            project_name="My App!",
            template_key="static",
            files={"index.html": "<h1>hi</h1>"},
            user_id="u",
        )
        assert request.repository_name == "my-app-"


class TestStepMessages:
    """Tests for step messages."""

    @pytest.mark.parametrize("step", list(DeploymentStep))
    @pytest.mark.parametrize("status", list(StepStatus))
    def test_every_step_has_a_message(self, step, status):
        message = step_message(step, status)
        assert message
        assert message != f"{step.value} {status.value}"

    def test_known_messages(self):
        assert (
            step_message(DeploymentStep.PUSH_FILES, StepStatus.IN_PROGRESS)
            == "Pushing project files to GitHub"
        )
        assert (
            step_message(DeploymentStep.LINK_REPOSITORY, StepStatus.COMPLETED)
            == "Vercel connected to GitHub"
        )
        assert (
            step_message(DeploymentStep.TRIGGER_DEPLOYMENT, StepStatus.FAILED)
            == "Failed to trigger deployment"
        )

    def test_steps_are_ordered(self):
        assert [s.value for s in DeploymentStep] == [
            "validate",
            "create_repository",
            "push_files",
            "create_hosting_project",
            "link_repository",
            "trigger_deployment",
            "monitor_deployment",
        ]


class TestStepRecord:
    """Tests for StepRecord transitions."""

    def test_new_record_is_in_progress(self):
        record = StepRecord(
            step=DeploymentStep.VALIDATE,
            message=step_message(DeploymentStep.VALIDATE, StepStatus.IN_PROGRESS),
        )
        assert record.status == StepStatus.IN_PROGRESS
        assert record.completed_at is None
        assert record.error is None

    def test_finish_completed(self):
        record = StepRecord(step=DeploymentStep.VALIDATE, message="")
        record.finish(StepStatus.COMPLETED, error="ignored")

        assert record.status == StepStatus.COMPLETED
        assert record.message == "Configuration validated successfully"
        assert record.error is None
        assert record.duration_ms >= 0

    def test_finish_failed(self):
        record = StepRecord(step=DeploymentStep.CREATE_REPOSITORY, message="")
        record.finish(StepStatus.FAILED, error="name already exists")

        assert record.status == StepStatus.FAILED
        assert record.message == "Failed to create GitHub repository"
        assert record.error == "name already exists"


class TestDeploymentResult:

    def test_failed_step(self):
        ok = StepRecord(step=DeploymentStep.VALIDATE, message="")
        ok.finish(StepStatus.COMPLETED)
        failed = StepRecord(step=DeploymentStep.CREATE_REPOSITORY, message="")
        failed.finish(StepStatus.FAILED, error="boom")

        result = DeploymentResult(success=False, error="boom", steps=[ok, failed])

        assert result.failed_step == DeploymentStep.CREATE_REPOSITORY

    def test_result_is_frozen(self):
        result = DeploymentResult(success=True)

        with pytest.raises(ValidationError):
            result.success = False

    def test_dump_for_clients(self):
        data = DeploymentResult(success=True, deployment_url="https://x.vercel.app").model_dump(
            mode="json"
        )
        assert data["deployment_url"] == "https://x.vercel.app"
        assert data["persisted"] is False
        assert data["steps"] == []


class TestCredentialInfo:

    def test_remaining(self):
        info = CredentialInfo(
            has_personal_credential=False,
            deployment_count=1,
            can_use_system_credential=True,
            system_credential_limit=3,
        )
        assert info.remaining_system_deployments == 2
        assert info.model_dump()["remaining_system_deployments"] == 2

    def test_remaining_never_negative(self):
        info = CredentialInfo(
            has_personal_credential=False,
            deployment_count=5,
            can_use_system_credential=False,
            system_credential_limit=3,
        )
        assert info.remaining_system_deployments == 0


class TestProjectRecord:

    def test_apply_deployment_fields(self):
        project = ProjectRecord(id="p1", user_id="u1", name="Todo")
        project.apply_deployment_fields(
            ProjectDeploymentFields(
                repository_url="https://github.com/octo/todo",
                repository_created=True,
                hosting_project_id="prj_1",
                hosting_connected=True,
                deployment_url="https://todo.vercel.app",
            )
        )

        status = DeploymentStatus.from_project(
            project, latest_deployment=DeploymentInfo(deployment_id="dpl_1", state="READY")
        )
        assert status.repository.url == "https://github.com/octo/todo"
        assert status.repository.created is True
        assert status.hosting.project_id == "prj_1"
        assert status.hosting.connected is True
        assert status.hosting.latest_deployment.state == "READY"
