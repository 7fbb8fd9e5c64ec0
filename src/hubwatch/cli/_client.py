"""Shared helpers for building API clients and schema stores from CLI context."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from hubwatch.api.client import HubClient
from hubwatch.api.errors import ConfigError
from hubwatch.api.hubs import HubsAPI
from hubwatch.protocol.mappings import MappingRegistry
from hubwatch.protocol.schemas import SchemaStore

if TYPE_CHECKING:
    from hubwatch.cli.main import AppContext
    from hubwatch.models.config import AppSettings


async def get_hubs_api(app_ctx: AppContext) -> tuple[HubClient, HubsAPI]:
    """Build an authenticated :class:`HubsAPI`.

    Uses the configured access token, falling back to a username/password
    login.  The caller must close the returned client.
    """
    settings = app_ctx.settings()
    client = HubClient(settings.api_url, access_token=settings.access_token)
    if not settings.access_token:
        if not (settings.username and settings.password):
            await client.close()
            raise ConfigError(
                "No access token found. Set HUBWATCH_ACCESS_TOKEN, or HUBWATCH_USERNAME "
                "and HUBWATCH_PASSWORD."
            )
        try:
            await client.login(settings.username, settings.password)
        except Exception:
            await client.close()
            raise
    return client, HubsAPI(client)


def get_schema_store(settings: AppSettings) -> SchemaStore:
    return SchemaStore(Path(settings.config_dir).expanduser() / "schemas.json")


def build_registry(settings: AppSettings) -> MappingRegistry:
    """Built-in mappings followed by the user's saved schemas."""
    registry = MappingRegistry.with_builtins()
    registry.extend(get_schema_store(settings).load())
    return registry
