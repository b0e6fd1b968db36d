"""Configuration loading — YAML + environment variable overrides."""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

load_dotenv()


def load_settings(yaml_path: Path | None = None) -> dict[str, Any]:
    """Load settings from YAML file with env var overrides.

    Args:
        yaml_path: Path to the YAML config file. Defaults to config/settings.yaml.

    Returns:
        Dict with all configuration values.
    """
    if yaml_path is None:
        yaml_path = Path(__file__).parent.parent.parent / "config" / "settings.yaml"

    with open(yaml_path) as f:
        config = yaml.safe_load(f) or {}

    for section in ("storage", "playback", "chart", "acquisition", "api", "logging"):
        config.setdefault(section, {})

    # Environment variable overrides
    if os.getenv("RACE_STORE_PATH"):
        config["storage"]["path"] = os.getenv("RACE_STORE_PATH")
    if os.getenv("PLAYBACK_SPEED"):
        config["playback"]["default_speed"] = int(os.getenv("PLAYBACK_SPEED"))
    if os.getenv("API__CORS_ORIGINS"):
        cors_str = os.getenv("API__CORS_ORIGINS")
        config["api"]["cors_origins"] = [o.strip() for o in cors_str.split(",")]
    if os.getenv("LOG_LEVEL"):
        config["logging"]["level"] = os.getenv("LOG_LEVEL")

    return config


# Global settings singleton
settings = load_settings()
