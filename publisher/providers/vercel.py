"""Vercel REST API client implementing the hosting provider."""

from datetime import datetime, timezone
from typing import Any

import httpx

from publisher.config import settings
from publisher.core.exceptions import ProviderError
from publisher.models.provider import DeploymentInfo, DeploymentLogEntry, HostingProjectInfo
from publisher.providers.base import HostingProvider
from publisher.providers.http import ProviderHTTPClient


class VercelClient(ProviderHTTPClient, HostingProvider):
    """Creates Vercel projects bound to GitHub repositories and deploys them."""

    provider_name = "Vercel"

    def __init__(
        self,
        token: str,
        team_id: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            token,
            base_url or settings.vercel_api_url,
            timeout=timeout if timeout is not None else settings.provider_timeout_seconds,
            transport=transport,
        )
        self.team_id = team_id if team_id is not None else settings.vercel_team_id

    def _params(self, **params: Any) -> dict[str, Any]:
        if self.team_id:
            params["teamId"] = self.team_id
        return params

    async def create_project(
        self,
        name: str,
        framework: str | None,
        repository_full_name: str,
    ) -> HostingProjectInfo:
        self.logger.info(
            "vercel.create_project",
            name=name,
            framework=framework,
            repository=repository_full_name,
        )
        response = await self._request(
            "create project",
            "POST",
            "/v9/projects",
            params=self._params(),
            json={
                "name": name,
                "framework": framework,
                "gitRepository": {"type": "github", "repo": repository_full_name},
            },
        )
        data = response.json()
        return HostingProjectInfo(
            project_id=data["id"],
            name=data["name"],
            linked_repository=(data.get("link") or {}).get("repo"),
        )

    async def link_repository(
        self, project_id: str, repository_full_name: str
    ) -> HostingProjectInfo:
        self.logger.info(
            "vercel.link_repository",
            project_id=project_id,
            repository=repository_full_name,
        )
        response = await self._request(
            "link repository",
            "POST",
            f"/v9/projects/{project_id}/link",
            params=self._params(),
            json={"type": "github", "repo": repository_full_name},
        )
        data = response.json()
        return HostingProjectInfo(
            project_id=data.get("id", project_id),
            name=data.get("name", ""),
            linked_repository=(data.get("link") or {}).get("repo", repository_full_name),
        )

    async def create_deployment(
        self,
        project_id: str,
        name: str,
        repository_full_name: str,
        ref: str,
    ) -> DeploymentInfo:
        org, _, repo = repository_full_name.partition("/")
        self.logger.info(
            "vercel.create_deployment", project_id=project_id, name=name, ref=ref
        )
        response = await self._request(
            "create deployment",
            "POST",
            "/v13/deployments",
            params=self._params(),
            json={
                "name": name,
                "project": project_id,
                "target": "production",
                "gitSource": {"type": "github", "org": org, "repo": repo, "ref": ref},
            },
        )
        return self._deployment_info(response.json())

    async def get_deployment(self, deployment_id: str) -> DeploymentInfo:
        response = await self._request(
            "get deployment",
            "GET",
            f"/v13/deployments/{deployment_id}",
            params=self._params(),
        )
        return self._deployment_info(response.json())

    async def get_deployment_logs(self, deployment_id: str) -> list[DeploymentLogEntry]:
        response = await self._request(
            "get deployment logs",
            "GET",
            f"/v3/deployments/{deployment_id}/events",
            params=self._params(builds=1, direction="forward"),
        )
        data = response.json()
        events = data.get("events", []) if isinstance(data, dict) else data
        return [self._log_entry(e) for e in events]

    async def list_project_deployments(
        self, project_id: str, limit: int = 10
    ) -> list[DeploymentInfo]:
        response = await self._request(
            "list deployments",
            "GET",
            "/v6/deployments",
            params=self._params(projectId=project_id, limit=limit),
        )
        return [self._deployment_info(d) for d in response.json().get("deployments", [])]

    async def cancel_deployment(self, deployment_id: str) -> bool:
        try:
            await self._request(
                "cancel deployment",
                "PATCH",
                f"/v12/deployments/{deployment_id}/cancel",
                params=self._params(),
            )
        except ProviderError as e:
            self.logger.error(
                "vercel.cancel_failed",
                deployment_id=deployment_id,
                error=e.message,
            )
            return False
        self.logger.info("vercel.deployment_cancelled", deployment_id=deployment_id)
        return True

    async def validate_credential(self, token: str) -> bool:
        try:
            await self._request(
                "validate credential",
                "GET",
                "/v2/user",
                headers={"Authorization": f"Bearer {token}"},
            )
        except ProviderError as e:
            if e.status_code is not None and 400 <= e.status_code < 500:
                return False
            raise
        return True

    @staticmethod
    def _deployment_info(data: dict[str, Any]) -> DeploymentInfo:
        url = data.get("url")
        created = data.get("createdAt") or data.get("created")
        return DeploymentInfo(
            deployment_id=data.get("id") or data["uid"],
            deployment_url=f"https://{url}" if url else None,
            state=data.get("readyState") or data.get("state"),
            created_at=(
                datetime.fromtimestamp(created / 1000, tz=timezone.utc)
                if created
                else None
            ),
            raw=data,
        )

    @staticmethod
    def _log_entry(data: dict[str, Any]) -> DeploymentLogEntry:
        payload = data.get("payload") or {}
        created = data.get("created") or payload.get("date")
        return DeploymentLogEntry(
            type=data.get("type", "unknown"),
            text=data.get("text") or payload.get("text"),
            created_at=(
                datetime.fromtimestamp(created / 1000, tz=timezone.utc)
                if created
                else None
            ),
            raw=data,
        )
