"""User-level configuration for the ErgoSum CLI.

Settings are resolved, highest priority first, from:

1. keyword arguments passed to :class:`CLISettings` (tests, embedding code);
2. ``ERGOSUM_*`` environment variables;
3. the user config file, ``~/.ergosum/config.toml`` by default or the path
   in ``ERGOSUM_CONFIG_FILE``;
4. field defaults.

Example ``config.toml``::

    api_url = "https://api.ergosum.cc"
    auth_token = "..."
    user_id = "user-123"
    author = "Ada Lovelace"

There is no module-level instance.  The root CLI callback builds one per
process and hands it down through the Click context; library callers build
their own and pass it in.

Security note: ``auth_token`` is excluded from ``repr`` and never logged.
"""
from __future__ import annotations

import os
import pathlib

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

DEFAULT_API_URL = "https://api.ergosum.cc"


def user_config_path() -> pathlib.Path:
    """Return the TOML config path, honouring ``ERGOSUM_CONFIG_FILE``."""
    if override := os.environ.get("ERGOSUM_CONFIG_FILE"):
        return pathlib.Path(override).expanduser()
    return pathlib.Path.home() / ".ergosum" / "config.toml"


class CLISettings(BaseSettings):
    """Process-scoped CLI configuration."""

    model_config = SettingsConfigDict(env_prefix="ERGOSUM_", extra="ignore")

    api_url: str = DEFAULT_API_URL
    auth_token: str | None = Field(default=None, repr=False)
    user_id: str = ""
    # Commit author; the builder falls back to its own default when unset.
    author: str | None = None
    timeout: float = 30.0
    debug: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=user_config_path()),
        )

    @property
    def is_authenticated(self) -> bool:
        return bool(self.auth_token)


def load_settings(**overrides: object) -> CLISettings:
    """Build a fresh :class:`CLISettings`; *overrides* win over every other source."""
    return CLISettings(**overrides)  # type: ignore[arg-type]  # pydantic-settings accepts init kwargs
