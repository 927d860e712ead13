from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from recall.domain.constants import DEFAULT_USER_ID, FEED_FILENAME, REQUEST_TIMEOUT
from recall.domain.models import ReviewMode

CONFIG_FILES = [
    Path.home() / ".config/recall/config.toml",
    Path.home() / ".recall.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for recall.
    Supports loading from:
    1. Environment variables (RECALL_*)
    2. Config file (~/.config/recall/config.toml or ~/.recall.toml)
    3. Manual overrides (CLI / API)
    """

    model_config = SettingsConfigDict(
        env_prefix="RECALL_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/recall")
    content_path: Path | None = None
    progress_path: Path | None = None
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/recall/logs")

    # Store
    backend: Literal["local", "rest"] = "local"
    rest_url: str | None = None
    rest_api_key: str | None = None
    content_url: str | None = None
    user_id: str = DEFAULT_USER_ID
    request_timeout: float = REQUEST_TIMEOUT

    # Presentation (deployment-time choice)
    review_order: ReviewMode = ReviewMode.PINNED_MANUAL

    verbose: int = 1

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

        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        # Earlier sources win: overrides, then env, then the file.
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def expand_dir(cls, v: Any) -> Path:
        return Path(v).expanduser()

    @field_validator("content_path", "progress_path", mode="before")
    @classmethod
    def expand_optional_path(cls, v: Any) -> Path | None:
        if v is None or v == "":
            return None
        return Path(v).expanduser()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/recall/config.toml (if exists)
    3. Environment variables (RECALL_*)
    4. cli_overrides (passed from Typer or the API)

    Store paths left unset are placed inside ``data_dir``.
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    config = AppConfig(**overrides)

    if config.content_path is None:
        config.content_path = config.data_dir / FEED_FILENAME
    if config.progress_path is None:
        config.progress_path = config.data_dir / "progress.json"

    return config
