"""Repository and hosting provider clients."""

from publisher.providers.base import HostingProvider, RepositoryProvider
from publisher.providers.factory import ProviderFactory
from publisher.providers.github import GitHubClient
from publisher.providers.vercel import VercelClient

__all__ = [
    "GitHubClient",
    "HostingProvider",
    "ProviderFactory",
    "RepositoryProvider",
    "VercelClient",
]
