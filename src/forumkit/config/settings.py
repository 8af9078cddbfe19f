"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs: CLI flags passed by Click
  2. Env vars: ``FORUMKIT_*`` prefix
  3. TOML file: ``forumkit.toml`` discovered via walk-up
  4. Code defaults: baked into the section models
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from forumkit.config.discovery import find_config, find_forum_root, read_toml
from forumkit.config.models import (
    BackgroundConfig,
    EventsConfig,
    ForumConfig,
    TenantConfig,
    TextConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``forumkit.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            self._data = read_toml(toml_path)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class ForumSettings(BaseSettings):
    """Unified settings for forumkit.

    Attributes:
        data_root: Directory holding ``.forumkit/``: the parent of
            ``forumkit.toml``, else the nearest forum root, else CWD.
        config_path: The TOML file that was loaded, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "FORUMKIT_",
        "env_nested_delimiter": "__",
    }

    data_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    sync: bool = False

    # --- TOML sections ---
    forum: ForumConfig = Field(default_factory=ForumConfig)
    text: TextConfig = Field(default_factory=TextConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    background: BackgroundConfig = Field(default_factory=BackgroundConfig)
    tenant: TenantConfig = Field(default_factory=TenantConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        data_root: Path | None = None,
        **cli_flags: Any,
    ) -> ForumSettings:
        """Construct settings from a CLI invocation.

        Discovers ``forumkit.toml`` via walk-up (or explicit *config_path*),
        resolves *data_root* from the config file's parent directory, and
        merges CLI flags as highest-priority overrides.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(data_root)

        resolved_root = data_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else find_forum_root() or Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(
                data_root=resolved_root,
                config_path=toml_path,
                **cli_flags,
            )
        finally:
            _tls.toml_path = None
