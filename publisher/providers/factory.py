"""Construction of provider clients bound to a credential."""

from publisher.config import settings
from publisher.providers.base import HostingProvider, RepositoryProvider
from publisher.providers.github import GitHubClient
from publisher.providers.vercel import VercelClient


class ProviderFactory:
    """Builds provider clients for one credential.

    The HTTP layer obtains providers through this factory so tests can swap in
    fakes with a dependency override.
    """

    def repository(self, token: str) -> RepositoryProvider:
        return GitHubClient(token)

    def hosting(self, token: str) -> HostingProvider:
        return VercelClient(token, team_id=settings.vercel_team_id)
