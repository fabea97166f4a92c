"""
Configuration loading.

Settings live in config.yaml at the project root; secrets come from the
environment (optionally a .env file next to config.yaml).
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

WEBCHAT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = WEBCHAT_ROOT / "config.yaml"


def load_config(path: Optional[Path] = None) -> dict:
    """
    Load configuration from config.yaml and the environment.

    Args:
        path: Config file to read (defaults to the project config.yaml)

    Returns:
        Config dict, empty if the file is missing or invalid
    """
    load_dotenv(WEBCHAT_ROOT / ".env")

    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (FileNotFoundError, yaml.YAMLError):
        config = {}

    if not isinstance(config, dict):
        return {}
    return config


def section(config: dict, name: str) -> dict:
    """Get a config section, always as a dict."""
    value = (config or {}).get(name)
    return value if isinstance(value, dict) else {}


def env_or(config_value: Optional[str], env_var: str) -> Optional[str]:
    """Prefer an explicit config value, fall back to an environment variable."""
    return config_value or os.environ.get(env_var)
