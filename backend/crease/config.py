"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class SettlementConfig(BaseModel):
    """Grace windows and settlement behaviour."""

    stale_result_warning_minutes: int = 120
    stale_fancy_grace_minutes: int = 30
    stale_match_grace_minutes: int = 60
    settle_on_resolve: bool = True  # Settle bets in the same tick a winner is published
    max_commission_depth: int = 3


class SchedulerConfig(BaseModel):
    """Sweep intervals in minutes."""

    result_sweep_minutes: int = 2
    winner_settlement_minutes: int = 5
    stale_fancy_sweep_minutes: int = 10
    stale_match_sweep_minutes: int = 15


class SourcesConfig(BaseModel):
    """External result source endpoints."""

    cricapi_base_url: str = "https://api.cricapi.com/v1"
    cricbuzz_recent_url: str = "https://www.cricbuzz.com/api/matches/getRecent"
    odds_feed_base_url: str = "https://api.shakti11.com/api"
    timeout_seconds: float = 10.0
    max_retries: int = 2
    user_agent: str = "Mozilla/5.0 (compatible)"


class ApiConfig(BaseModel):
    """Admin API server settings."""

    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # Database
    database_url: str = "sqlite+aiosqlite:///data/crease.db"
    database_echo: bool = False

    # API Keys
    cricapi_api_key: str = ""
    logfire_token: str = ""

    log_level: str = "INFO"

    # Nested configuration sections
    settlement: SettlementConfig = Field(default_factory=SettlementConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.debug(f"Config file not found: {config_path}. Using defaults.")
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["settlement", "scheduler", "sources", "api"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    section_dict = section.model_dump()
                    section_dict.update(yaml_config[section_name])
                    setattr(self, section_name, section.__class__(**section_dict))

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
