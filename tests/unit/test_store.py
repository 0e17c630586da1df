"""Unit tests for the in-memory stores."""

from datetime import datetime, timedelta

import pytest

from publisher.core.exceptions import PersistenceError
from publisher.core.store import CredentialStore, ProjectStore
from publisher.models.project import ProjectDeploymentFields, ProjectRecord


class TestInMemoryProjectStore:
    """Tests for InMemoryProjectStore."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, project_store):
        project = ProjectRecord(id="p1", user_id="u1", name="Todo")
        await project_store.create_project(project)

        assert await project_store.get_project("p1") == project
        assert await project_store.get_project("missing") is None

    @pytest.mark.asyncio
    async def test_update_deployment_fields(self, project_store, project):
        updated = await project_store.update_deployment_fields(
            project.id,
            ProjectDeploymentFields(
                repository_url="https://github.com/octo/todo-app",
                repository_created=True,
            ),
        )

        assert updated.repository_url == "https://github.com/octo/todo-app"
        assert updated.repository_created is True
        assert updated.hosting_connected is False

    @pytest.mark.asyncio
    async def test_update_missing_project(self, project_store):
        with pytest.raises(PersistenceError) as exc_info:
            await project_store.update_deployment_fields("missing", ProjectDeploymentFields())

        assert exc_info.value.message == "Database update failed: project not found"
        assert exc_info.value.project_id == "missing"

    @pytest.mark.asyncio
    async def test_list_projects_by_user(self, project_store):
        now = datetime.utcnow()
        await project_store.create_project(
            ProjectRecord(id="old", user_id="u1", name="Old", created_at=now - timedelta(days=1))
        )
        await project_store.create_project(
            ProjectRecord(id="new", user_id="u1", name="New", created_at=now)
        )
        await project_store.create_project(ProjectRecord(id="other", user_id="u2", name="X"))

        projects = await project_store.list_projects("u1")

        assert [p.id for p in projects] == ["new", "old"]
        assert len(await project_store.list_projects()) == 3

    @pytest.mark.asyncio
    async def test_delete_project(self, project_store, project):
        assert await project_store.delete_project(project.id) is True
        assert await project_store.delete_project(project.id) is False
        assert await project_store.get_project(project.id) is None


class TestInMemoryCredentialStore:
    """Tests for InMemoryCredentialStore."""

    @pytest.mark.asyncio
    async def test_personal_credential_lifecycle(self, credential_store):
        assert await credential_store.get_personal_credential("u1") is None

        await credential_store.save_personal_credential("u1", "tok")
        assert await credential_store.get_personal_credential("u1") == "tok"

        await credential_store.remove_personal_credential("u1")
        await credential_store.remove_personal_credential("u1")
        assert await credential_store.get_personal_credential("u1") is None

    @pytest.mark.asyncio
    async def test_usage_counter(self, credential_store):
        assert await credential_store.get_system_usage("u1") == 0

        assert await credential_store.record_system_usage("u1", "p1") == 1
        assert await credential_store.record_system_usage("u1", "p1") == 2
        assert await credential_store.get_system_usage("u1") == 2
        assert await credential_store.get_system_usage("u2") == 0

    @pytest.mark.asyncio
    async def test_reservation_counts_until_released(self, credential_store):
        assert await credential_store.reserve_system_usage("u1", "p1", limit=2) == 1
        assert await credential_store.reserve_system_usage("u1", "p2", limit=2) == 2
        assert await credential_store.reserve_system_usage("u1", "p3", limit=2) is None
        assert await credential_store.get_system_usage("u1") == 2

        await credential_store.release_system_usage("u1", "p1")

        assert await credential_store.get_system_usage("u1") == 1
        assert await credential_store.reserve_system_usage("u1", "p3", limit=2) == 2

    @pytest.mark.asyncio
    async def test_record_consumes_reservation(self, credential_store):
        await credential_store.reserve_system_usage("u1", "p1", limit=3)

        assert await credential_store.record_system_usage("u1", "p1") == 1
        await credential_store.release_system_usage("u1", "p1")

        assert await credential_store.get_system_usage("u1") == 1


def test_store_interfaces_declare_project_operations():
    assert {
        "create_project",
        "get_project",
        "update_deployment_fields",
        "delete_project",
        "list_projects",
    } <= ProjectStore.__abstractmethods__
    assert {
        "reserve_system_usage",
        "release_system_usage",
        "record_system_usage",
    } <= CredentialStore.__abstractmethods__
