"""GitHub REST API client implementing the repository provider."""

import httpx

from publisher.config import settings
from publisher.core.exceptions import ProviderError
from publisher.models.provider import CommitInfo, RepositoryInfo, RepositorySpec
from publisher.providers.base import RepositoryProvider
from publisher.providers.http import ProviderHTTPClient


class GitHubClient(ProviderHTTPClient, RepositoryProvider):
    """Creates repositories and pushes generated files through the Git data API."""

    provider_name = "GitHub"

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            token,
            base_url or settings.github_api_url,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout if timeout is not None else settings.provider_timeout_seconds,
            transport=transport,
        )

    async def organization_accessible(self, organization: str) -> bool:
        try:
            response = await self._request(
                "check organization",
                "GET",
                f"/user/memberships/orgs/{organization}",
            )
        except ProviderError as e:
            if e.status_code in (403, 404):
                return False
            raise
        return response.json().get("state") == "active"

    async def create_repository(self, spec: RepositorySpec) -> RepositoryInfo:
        self.logger.info("github.create_repository", name=spec.name, private=spec.private)
        response = await self._request(
            "create repository", "POST", "/user/repos", json=spec.model_dump()
        )
        return self._repository_info(response.json())

    async def create_repository_in_organization(
        self, organization: str, spec: RepositorySpec
    ) -> RepositoryInfo:
        self.logger.info(
            "github.create_repository",
            name=spec.name,
            organization=organization,
            private=spec.private,
        )
        response = await self._request(
            "create repository",
            "POST",
            f"/orgs/{organization}/repos",
            json=spec.model_dump(),
        )
        return self._repository_info(response.json())

    async def commit_files(
        self,
        owner: str,
        name: str,
        files: list[tuple[str, str]],
        message: str,
        branch: str = "main",
    ) -> CommitInfo:
        """Create one commit containing every file on top of ``branch``.

        The branch ref only moves after the tree and commit exist, so a
        failure part-way leaves the branch untouched.
        """
        repo = f"/repos/{owner}/{name}"
        self.logger.info(
            "github.commit_files",
            repository=f"{owner}/{name}",
            files=len(files),
            branch=branch,
        )

        ref = await self._request("read branch", "GET", f"{repo}/git/ref/heads/{branch}")
        parent_sha = ref.json()["object"]["sha"]

        parent = await self._request("read commit", "GET", f"{repo}/git/commits/{parent_sha}")
        base_tree = parent.json()["tree"]["sha"]

        tree = await self._request(
            "create tree",
            "POST",
            f"{repo}/git/trees",
            json={
                "base_tree": base_tree,
                "tree": [
                    {"path": path, "mode": "100644", "type": "blob", "content": content}
                    for path, content in files
                ],
            },
        )

        commit = await self._request(
            "create commit",
            "POST",
            f"{repo}/git/commits",
            json={
                "message": message,
                "tree": tree.json()["sha"],
                "parents": [parent_sha],
            },
        )
        commit_data = commit.json()

        await self._request(
            "update branch",
            "PATCH",
            f"{repo}/git/refs/heads/{branch}",
            json={"sha": commit_data["sha"]},
        )

        return CommitInfo(
            sha=commit_data["sha"],
            url=commit_data.get("html_url"),
            file_count=len(files),
        )

    @staticmethod
    def _repository_info(data: dict) -> RepositoryInfo:
        return RepositoryInfo(
            owner=data["owner"]["login"],
            name=data["name"],
            full_name=data["full_name"],
            url=data["html_url"],
            default_branch=data.get("default_branch") or "main",
        )
