"""Workspace configuration and credential persistence."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agrippa.core.errors import ConfigurationError
from agrippa.utils.paths import DOTFILE

logger = logging.getLogger(__name__)


class WorkspaceConfig(BaseModel):
    """Credentials and endpoints, stored as camelCase JSON in the workspace dotfile."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    keycloak_user: Optional[str] = Field(None, alias="keycloakUser")
    keycloak_password: Optional[str] = Field(None, alias="keycloakPassword")
    keycloak_client_id: Optional[str] = Field(None, alias="keycloakClientId")
    keycloak_client_secret: Optional[str] = Field(None, alias="keycloakClientSecret")
    keycloak_url: Optional[str] = Field(None, alias="keycloakUrl")
    rip_base_url: Optional[str] = Field(None, alias="ripBaseUrl")
    auth_token: Optional[str] = Field(None, alias="authToken")


AUTH_FIELDS = [
    "keycloak_url",
    "keycloak_password",
    "keycloak_user",
    "keycloak_client_id",
    "keycloak_client_secret",
]
API_FIELDS = ["auth_token", "rip_base_url"]


def ensure_config(config: WorkspaceConfig, fields: list[str]) -> None:
    """Raise ConfigurationError naming every field in `fields` that is unset or empty."""
    missing = [f for f in fields if not getattr(config, f, None)]
    if missing:
        raise ConfigurationError(missing)


class CredentialStore(Protocol):
    def load(self) -> WorkspaceConfig: ...

    def update(self, **fields: str) -> WorkspaceConfig: ...


class FileCredentialStore:
    """Reads and writes the workspace dotfile (.sorge)."""

    def __init__(self, root: Path) -> None:
        self.path = root / DOTFILE

    def load(self) -> WorkspaceConfig:
        if not self.path.is_file():
            return WorkspaceConfig()
        try:
            return WorkspaceConfig.model_validate(json.loads(self.path.read_text()))
        except (json.JSONDecodeError, ValidationError, OSError) as e:
            logger.warning("Ignoring unreadable config %s: %s", self.path, e)
            return WorkspaceConfig()

    def update(self, **fields: str) -> WorkspaceConfig:
        config = self.load().model_copy(update=fields)
        self.path.write_text(
            json.dumps(config.model_dump(by_alias=True, exclude_none=True), indent=2)
        )
        return config


class MemoryCredentialStore:
    def __init__(self, config: WorkspaceConfig | None = None) -> None:
        self.config = config or WorkspaceConfig()

    def load(self) -> WorkspaceConfig:
        return self.config

    def update(self, **fields: str) -> WorkspaceConfig:
        self.config = self.config.model_copy(update=fields)
        return self.config
