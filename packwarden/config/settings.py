"""
PackWarden Configuration Module

Handles loading and validation of application configuration.
"""

from pathlib import Path
from typing import Optional
from functools import lru_cache

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..packs.versions import parse_semver


class DatabaseConfig(BaseModel):
    """Record store configuration settings."""
    path: str = "data/packwarden.db"
    url: Optional[str] = None  # full SQLAlchemy URL, overrides path
    echo: bool = False


class ReleasesConfig(BaseModel):
    """Remote release repository configuration."""
    api_base: str = "https://api.github.com"
    owner: str = "panther-labs"
    repo: str = "panther-analysis"
    bundle_asset: str = "panther-analysis-all.zip"
    signature_asset: str = "panther-analysis-all.sig"
    # earliest release that ships pack definitions
    minimum_version: str = "v1.14.0"
    timeout_seconds: float = 30.0
    token: Optional[str] = None

    @field_validator("minimum_version")
    @classmethod
    def validate_minimum_version(cls, v):
        if parse_semver(v) is None:
            raise ValueError(f"minimum_version must be a semantic version tag, got {v!r}")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file_path: str = "logs/packwarden.log"


class Settings(BaseSettings):
    """
    Main application settings.
    
    Loads configuration from config.yml file, with environment variable overrides.
    """
    model_config = SettingsConfigDict(
        env_prefix="PACKWARDEN_",
        env_nested_delimiter="__",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    releases: ReleasesConfig = Field(default_factory=ReleasesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    
    # Base path for relative paths
    base_path: Path = Field(default_factory=lambda: Path.cwd())

    def resolve_path(self, path: str) -> Path:
        """Resolve a relative path against the base path."""
        p = Path(path)
        if p.is_absolute():
            return p
        return self.base_path / p

    def database_url(self) -> str:
        """SQLAlchemy URL for the record store."""
        if self.database.url:
            return self.database.url
        return f"sqlite:///{self.resolve_path(self.database.path)}"


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file.
    
    Args:
        config_path: Path to config file. Defaults to 'config.yml' in current directory.
        
    Returns:
        Settings object with loaded configuration.
    """
    if config_path is None:
        config_path = "config.yml"
    
    config_file = Path(config_path)
    
    if config_file.exists():
        with open(config_file, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        config_data = {}
    
    # Set base path to config file's parent directory
    config_data["base_path"] = config_file.parent.resolve()
    
    return Settings(**config_data)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    
    This is the primary way to access settings throughout the application.
    """
    return load_config()
