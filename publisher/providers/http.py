"""Shared async HTTP plumbing for provider API clients."""

from typing import Any

import httpx

from publisher.core.exceptions import ProviderError
from publisher.utils.logging import get_logger

# Longest slice of a provider error body kept in the error message
ERROR_BODY_LIMIT = 500


class ProviderHTTPClient:
    """Thin wrapper over ``httpx.AsyncClient`` that raises ``ProviderError``.

    Subclasses set ``provider_name`` and call ``_request`` for every API call.
    """

    provider_name = "provider"

    def __init__(
        self,
        token: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}", **(headers or {})},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self.logger = get_logger(f"providers.{self.provider_name.lower()}")

    @property
    def name(self) -> str:
        return self.provider_name

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, converting HTTP and transport failures to ``ProviderError``."""
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = e.response.text[:ERROR_BODY_LIMIT]
            self.logger.warning(
                f"{self.provider_name.lower()}.request_failed",
                operation=operation,
                status_code=e.response.status_code,
            )
            raise ProviderError(
                self.provider_name,
                operation,
                f"{e.response.status_code} {body}".strip(),
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            self.logger.warning(
                f"{self.provider_name.lower()}.transport_error",
                operation=operation,
                error=str(e),
            )
            raise ProviderError(
                self.provider_name, operation, str(e) or type(e).__name__
            ) from e
        return response
