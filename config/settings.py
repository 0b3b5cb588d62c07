"""Configuration settings and data models."""

import json
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from tournaments.models import SeedingPolicy

CONFIG_FILENAME = "bracket_config.json"


class DatabaseConfig(BaseModel):
    """SQLite storage settings."""

    path: str = Field(default="tournaments.db", description="SQLite database file")
    timeout: float = Field(
        default=5.0, description="Seconds to wait for another writer's lock"
    )

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Database timeout must be positive")
        return v


class EngineConfig(BaseModel):
    """Bracket engine behaviour."""

    default_seeding_policy: SeedingPolicy = Field(
        default=SeedingPolicy.RANKED,
        description="Seeding used when a request does not name one",
    )
    random_seed: int | None = Field(
        default=None, description="Fixes random seeding draws for reproducible runs"
    )


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8000, description="Bind port")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"], description="Allowed browser origins"
    )


class SystemConfig(BaseModel):
    """System-wide configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")


class AppConfig(BaseModel):
    """Complete application configuration."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """Load configuration from JSON file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        unknown_sections = set(data) - set(cls.model_fields)
        if unknown_sections:
            raise ValueError(f"Unknown config sections: {sorted(unknown_sections)}")

        return cls(**data)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(mode="json", exclude_unset=True),
                f,
                default_flow_style=False,
                indent=2,
            )

    def apply_environment(self) -> "AppConfig":
        """Override settings from BRACKET_DB_PATH and PORT."""
        db_path = os.environ.get("BRACKET_DB_PATH")
        if db_path:
            self.database.path = db_path
        port = os.environ.get("PORT")
        if port:
            self.server.port = int(port)
        return self


def get_default_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from bracket_config.json, creating it if needed."""
    config_path = config_path or Path(CONFIG_FILENAME)
    if not config_path.exists():
        template_config = get_template_config()
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(template_config.model_dump(mode="json"), f, indent=2)
    return AppConfig.load_from_file(config_path).apply_environment()


def get_template_config() -> AppConfig:
    """Get template configuration for config file generation."""
    return AppConfig(
        database=DatabaseConfig(path="tournaments.db", timeout=5.0),
        engine=EngineConfig(
            default_seeding_policy=SeedingPolicy.RANKED,
            random_seed=None,
        ),
        server=ServerConfig(
            host="0.0.0.0",
            port=8000,
            cors_origins=["http://localhost:3000"],
        ),
        system=SystemConfig(log_level="INFO"),
    )
