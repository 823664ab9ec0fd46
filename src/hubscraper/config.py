# src/hubscraper/config.py
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# Config keys holding filesystem paths that are resolved against PROJECT_ROOT
_PATH_KEYS = (
    ("database", "path"),
    ("logging", "file"),
    ("digests", "directory"),
)


def deep_merge_dicts(base: Dict, update: Dict) -> Dict:
    """Recursively merge two dictionaries. Update values override base values."""
    merged = base.copy()
    for key, value in update.items():
        if isinstance(value, dict) and key in merged and isinstance(merged[key], dict):
            merged[key] = deep_merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def read_yaml_mapping(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML configuration from {path}: {e}")
    except IOError as e:
        raise ConfigurationError(f"Error reading configuration file {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} is not a valid YAML dictionary.")
    return data


def load_config(config_path: Optional[str] = None, env: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads configuration from YAML files.
    It loads a default config, then merges an optional environment-specific config
    (``<env>.yaml`` next to the primary file).
    """
    if config_path:
        primary_config_file = Path(config_path)
        if not primary_config_file.is_absolute():
            primary_config_file = PROJECT_ROOT / primary_config_file
    else:
        primary_config_file = PROJECT_ROOT / "config/default.yaml"

    if not primary_config_file.exists():
        raise ConfigurationError(f"Primary configuration file not found: {primary_config_file}")

    config_data = read_yaml_mapping(primary_config_file)

    if env and env != "default":
        env_config_file = primary_config_file.parent / f"{env}.yaml"
        if env_config_file.exists():
            config_data = deep_merge_dicts(config_data, read_yaml_mapping(env_config_file))
            logger.info(f"Loaded and merged environment configuration from: {env_config_file}")
        else:
            logger.warning(f"Environment configuration file for '{env}' not found at {env_config_file}. Using primary config only.")

    # Ensure essential paths are absolute
    for section, key in _PATH_KEYS:
        value = config_data.get(section, {}).get(key) if isinstance(config_data.get(section), dict) else None
        if value and not Path(value).is_absolute():
            config_data[section][key] = str(PROJECT_ROOT / value)

    logger.debug(f"Final configuration loaded: {config_data}")
    return config_data
