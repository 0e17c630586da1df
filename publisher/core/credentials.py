"""Hosting credential selection and shared-credential quota.

Users get a small number of deployments on the platform's own Vercel token
(the system credential). After that they must supply a personal token, either
per request or saved once through ``save_personal_credential``.
"""

from publisher.config import settings
from publisher.core.exceptions import CredentialError, PublisherError, QuotaExceededError
from publisher.core.store import CredentialStore
from publisher.models.deployment import (
    CredentialInfo,
    CredentialSelection,
    UpgradePrompt,
)
from publisher.providers.base import HostingProvider
from publisher.utils.logging import get_logger, mask_token


class TokenManager:
    """Chooses the hosting credential for a user and enforces the quota."""

    def __init__(
        self,
        store: CredentialStore,
        hosting: HostingProvider,
        system_token: str | None = None,
        system_limit: int | None = None,
    ):
        self.store = store
        self.hosting = hosting
        self.system_token = (
            system_token if system_token is not None else settings.vercel_token
        )
        self.system_limit = (
            system_limit if system_limit is not None else settings.system_deployment_limit
        )
        self.logger = get_logger("token_manager")

    async def get_credential_info(self, user_id: str) -> CredentialInfo:
        """Get the user's personal credential state and system usage."""
        personal = await self.store.get_personal_credential(user_id)
        used = await self.store.get_system_usage(user_id)
        return CredentialInfo(
            has_personal_credential=bool(personal),
            deployment_count=used,
            can_use_system_credential=used < self.system_limit,
            system_credential_limit=self.system_limit,
        )

    async def select_credential(
        self,
        user_id: str,
        explicit_credential: str | None = None,
        project_id: str | None = None,
    ) -> CredentialSelection:
        """Pick the credential for one deployment.

        Order of preference: an explicitly supplied token, the user's saved
        token, then the system token while the user is under quota.

        Choosing the system token reserves one of the user's slots for
        ``project_id``. The caller either confirms it with
        ``track_deployment`` or gives it back with ``release_credential``.

        Raises:
            CredentialError: The explicit token was rejected, or no system
                token is configured.
            QuotaExceededError: The user has no personal token and has used
                all system-credential deployments.
        """
        if explicit_credential:
            if not await self.hosting.validate_credential(explicit_credential):
                raise CredentialError("Provided Vercel token is invalid")
            self.logger.info(
                "token_manager.selected",
                user_id=user_id,
                source="explicit",
                token=mask_token(explicit_credential),
            )
            return CredentialSelection(token=explicit_credential, is_system_credential=False)

        personal = await self.store.get_personal_credential(user_id)
        if personal:
            if await self._personal_credential_valid(user_id, personal):
                self.logger.info("token_manager.selected", user_id=user_id, source="personal")
                return CredentialSelection(token=personal, is_system_credential=False)
            self.logger.warning(
                "token_manager.personal_token_invalid",
                user_id=user_id,
                fallback="system",
            )

        if not self.system_token:
            raise CredentialError("System Vercel token not configured")

        # Check and increment happen atomically in the store
        reserved = await self.store.reserve_system_usage(
            user_id, project_id, self.system_limit
        )
        if reserved is None:
            used = await self.store.get_system_usage(user_id)
            self.logger.info(
                "token_manager.quota_exhausted",
                user_id=user_id,
                used=used,
                limit=self.system_limit,
            )
            raise QuotaExceededError(self.system_limit, used)

        remaining = self.system_limit - (reserved - 1)
        self.logger.info(
            "token_manager.selected",
            user_id=user_id,
            source="system",
            remaining=remaining,
        )
        return CredentialSelection(
            token=self.system_token,
            is_system_credential=True,
            remaining_system_deployments=remaining,
            should_upgrade=remaining <= 1,
        )

    async def track_deployment(
        self, user_id: str, project_id: str, was_system_credential: bool
    ) -> None:
        """Count a completed deployment against the user's system quota."""
        if not was_system_credential:
            return
        total = await self.store.record_system_usage(user_id, project_id)
        self.logger.info(
            "token_manager.usage_tracked",
            user_id=user_id,
            project_id=project_id,
            used=total,
            limit=self.system_limit,
        )

    async def release_credential(
        self, user_id: str, project_id: str | None, selection: CredentialSelection
    ) -> None:
        """Return the system slot reserved for a deployment that did not succeed."""
        if not selection.is_system_credential:
            return
        await self.store.release_system_usage(user_id, project_id)
        self.logger.info(
            "token_manager.reservation_released",
            user_id=user_id,
            project_id=project_id,
        )

    async def _personal_credential_valid(self, user_id: str, token: str) -> bool:
        # A saved token that cannot be checked is treated like an invalid one
        try:
            return await self.hosting.validate_credential(token)
        except PublisherError as e:
            self.logger.warning(
                "token_manager.personal_token_unverified",
                user_id=user_id,
                error=e.message,
            )
            return False

    async def should_prompt_upgrade(self, user_id: str) -> UpgradePrompt:
        """Recommend whether to ask the user for their own token."""
        info = await self.get_credential_info(user_id)
        if info.has_personal_credential:
            return UpgradePrompt(should_prompt=False)

        if info.deployment_count >= self.system_limit:
            reason = "limit_reached"
        elif info.deployment_count >= self.system_limit - 1:
            reason = "approaching_limit"
        else:
            return UpgradePrompt(
                should_prompt=False,
                deployment_count=info.deployment_count,
                limit=self.system_limit,
                remaining=info.remaining_system_deployments,
            )

        return UpgradePrompt(
            should_prompt=True,
            reason=reason,
            deployment_count=info.deployment_count,
            limit=self.system_limit,
            remaining=info.remaining_system_deployments,
        )

    async def save_personal_credential(self, user_id: str, token: str) -> None:
        """Validate and store the user's own Vercel token."""
        if not await self.hosting.validate_credential(token):
            raise CredentialError("Invalid Vercel token")
        await self.store.save_personal_credential(user_id, token)
        self.logger.info(
            "token_manager.personal_token_saved",
            user_id=user_id,
            token=mask_token(token),
        )

    async def remove_personal_credential(self, user_id: str) -> None:
        """Forget the user's saved Vercel token."""
        await self.store.remove_personal_credential(user_id)
        self.logger.info("token_manager.personal_token_removed", user_id=user_id)

    async def read_credential(self, user_id: str) -> str:
        """Token for status lookups: the saved personal token, else the system token.

        Reads never count against the quota.
        """
        personal = await self.store.get_personal_credential(user_id)
        return personal or self.system_token
