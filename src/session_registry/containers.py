"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from session_registry.adapters.remote_transport import HttpxRemoteTransport
from session_registry.config import Settings
from session_registry.services.sessions import SessionRegistryClient


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_client: SessionRegistryClient
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    transport = HttpxRemoteTransport.create(
        base_url=resolved_settings.remote_base_url,
        client_id=resolved_settings.client_id,
        client_secret=resolved_settings.client_secret,
        policy=resolved_settings.request_policy(),
    )
    session_client = SessionRegistryClient(
        transport=transport,
        organization=resolved_settings.organization_name,
        application=resolved_settings.application_name,
    )

    async def close_resources() -> None:
        await transport.close()

    return AppContainer(
        settings=resolved_settings,
        session_client=session_client,
        close_resources=close_resources,
    )
