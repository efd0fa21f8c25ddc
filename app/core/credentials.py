"""Graph credential resolution: ordered credential strategies and token acquisition."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from azure.core.credentials_async import AsyncTokenCredential
from azure.core.exceptions import ClientAuthenticationError
from azure.identity.aio import ClientSecretCredential, DefaultAzureCredential, ManagedIdentityCredential

from app.core.config import Settings

logger = logging.getLogger(__name__)

GRAPH_SCOPE = "https://graph.microsoft.com/.default"

CredentialStrategy = Callable[[Settings], AsyncTokenCredential | None]


class AuthTokenError(Exception):
    pass


def client_secret_strategy(settings: Settings) -> AsyncTokenCredential | None:
    if not (settings.AZURE_TENANT_ID and settings.AZURE_CLIENT_ID and settings.AZURE_CLIENT_SECRET):
        return None
    return ClientSecretCredential(
        settings.AZURE_TENANT_ID,
        settings.AZURE_CLIENT_ID,
        settings.AZURE_CLIENT_SECRET,
    )


def managed_identity_strategy(settings: Settings) -> AsyncTokenCredential | None:
    if not settings.USE_MANAGED_IDENTITY:
        return None
    if settings.MANAGED_IDENTITY_CLIENT_ID:
        return ManagedIdentityCredential(client_id=settings.MANAGED_IDENTITY_CLIENT_ID)
    return ManagedIdentityCredential()


def default_chain_strategy(settings: Settings) -> AsyncTokenCredential | None:
    return DefaultAzureCredential(exclude_interactive_browser_credential=True)


STRATEGIES: dict[str, CredentialStrategy] = {
    "client_secret": client_secret_strategy,
    "managed_identity": managed_identity_strategy,
    "default": default_chain_strategy,
}


def resolve_credential(
    settings: Settings,
    strategies: Sequence[CredentialStrategy] | None = None,
) -> AsyncTokenCredential | None:
    """Return the credential from the first strategy that yields one."""
    if strategies is None:
        unknown = [name for name in settings.DIRECTORY_CREDENTIALS if name not in STRATEGIES]
        if unknown:
            raise ValueError(f"Unknown credential strategies: {', '.join(unknown)}")
        strategies = [STRATEGIES[name] for name in settings.DIRECTORY_CREDENTIALS]

    for strategy in strategies:
        credential = strategy(settings)
        if credential is not None:
            logger.info("Using %s for Graph tokens", type(credential).__name__)
            return credential
    return None


class GraphTokenProvider:
    def __init__(self, credential: AsyncTokenCredential | None, timeout: float = 10.0) -> None:
        self.credential = credential
        self.timeout = timeout

    async def get_token(self, scope: str = GRAPH_SCOPE) -> str:
        if self.credential is None:
            raise AuthTokenError("No directory credential configured")

        try:
            access = await asyncio.wait_for(self.credential.get_token(scope), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"Token request timed out after {self.timeout}s") from e
        except ClientAuthenticationError as e:
            logger.error("Graph token acquisition failed: %s", e.message)
            raise AuthTokenError(f"Failed to acquire Graph token: {e.message}") from e

        if not access or not access.token:
            raise AuthTokenError("Credential returned an empty Graph token")
        return access.token

    async def close(self) -> None:
        if self.credential is not None:
            await self.credential.close()
