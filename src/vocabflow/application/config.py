from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from vocabflow.domain.constants import (
    DEFAULT_DAILY_GOAL,
    DEFAULT_HOST,
    DEFAULT_PORT,
    STORAGE_KEY,
)

CONFIG_FILES = [
    Path.home() / ".config/vocabflow/config.toml",
    Path.home() / ".vocabflow.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for vocabflow.
    Supports loading from (highest priority first):
    1. Manual overrides (CLI / HTTP)
    2. Environment variables (VOCABFLOW_*)
    3. Config file (~/.config/vocabflow/config.toml or ~/.vocabflow.toml)
    """

    model_config = SettingsConfigDict(
        env_prefix="VOCABFLOW_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/vocabflow")

    # Storage
    storage_backend: Literal["json", "memory"] = "json"
    storage_key: str = STORAGE_KEY

    # Ledger defaults (only used before anything is stored)
    daily_goal: int = Field(default=DEFAULT_DAILY_GOAL, ge=1)

    # Server
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing file wins
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/vocabflow/config.toml (if exists)
    3. Environment variables (VOCABFLOW_*)
    4. cli_overrides (None values are ignored)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
