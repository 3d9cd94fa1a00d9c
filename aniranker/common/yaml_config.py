from pathlib import Path
from typing import Any

import yaml

from aniranker.common.config import ConfigError, JikanConfig, RankingConfig, StorageConfig


def _load_section(path: str | Path, section: str) -> dict[str, Any] | None:
    """Read one top-level section of a YAML config file.

    Returns None when the file does not exist or is empty.

    Raises:
        ConfigError: If the document or the section is not a mapping
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return None
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {str(path)!r}: {e}") from e

    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigError(f"{str(path)!r} must contain a mapping at the top level")

    section_data = data.get(section, {})
    if section_data is None:
        return {}
    if not isinstance(section_data, dict):
        raise ConfigError(f"Section {section!r} in {str(path)!r} must be a mapping")
    return section_data


def load_ranking_config(path: str | Path = "config.yaml") -> RankingConfig:
    """Load ranking engine tunables from the ``ranking`` section of a YAML file.

    Args:
        path: Path to the config YAML file

    Returns:
        RankingConfig loaded from the file, or defaults if the file doesn't exist
    """
    data = _load_section(path, "ranking")
    if data is None:
        return RankingConfig()
    return RankingConfig(**data)


def load_jikan_config(path: str | Path = "config.yaml") -> JikanConfig:
    data = _load_section(path, "jikan")
    if data is None:
        return JikanConfig()
    return JikanConfig(**data)


def load_storage_config(path: str | Path = "config.yaml") -> StorageConfig:
    data = _load_section(path, "storage")
    if data is None:
        return StorageConfig()
    return StorageConfig(**data)
