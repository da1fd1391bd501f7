"""Repository configuration stored in .blobtrack/config."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from .constants import DEFAULT_BRANCH
from .errors import ConfigError
from .utils import atomic_write_text


class AddConfig(BaseModel):
    """Settings for bulk add."""

    # Abort ``add .`` on the first file that can't be staged
    fail_fast: bool = True


class IndexConfig(BaseModel):
    """Settings for the staging index."""

    lock_timeout: float = Field(default=10.0, gt=0)


class RepoConfig(BaseModel):
    """Repository configuration (stored in .blobtrack/config as YAML)."""

    format_version: int = 1
    default_branch: str = DEFAULT_BRANCH
    add: AddConfig = Field(default_factory=AddConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)


def load_repo_config(path: Path) -> RepoConfig:
    """Load repository configuration, falling back to defaults if absent.

    Raises:
        ConfigError: If the file can't be read, parsed or validated
    """
    if not path.exists():
        return RepoConfig()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigError(f"Failed to read config {path}: {e.strerror or e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping, got {type(data).__name__}")

    try:
        return RepoConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e


def save_repo_config(config: RepoConfig, path: Path) -> None:
    """Save repository configuration atomically."""
    config_text = yaml.safe_dump(config.model_dump(), default_flow_style=False, sort_keys=False)
    atomic_write_text(path, config_text)
