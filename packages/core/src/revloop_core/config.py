import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "reviewer": "claude",  # claude | gemini | anthropic | openai | mock
    "model": None,  # None = the provider's default model
    "cli_path": None,  # None = the provider's executable name on PATH
    "timeout": 120,  # seconds allowed for one reviewer invocation
    "storage_path": ".reviews",
    "max_review_rounds": 5,
    "log_level": "WARNING",
    "log_file": None,
}

# Environment variable -> (config key, type)
_ENV_OVERRIDES = {
    "REVLOOP_REVIEWER": ("reviewer", str),
    "REVLOOP_MODEL": ("model", str),
    "REVLOOP_CLI_PATH": ("cli_path", str),
    "REVLOOP_TIMEOUT": ("timeout", int),
    "REVLOOP_STORAGE_PATH": ("storage_path", str),
    "REVLOOP_MAX_REVIEW_ROUNDS": ("max_review_rounds", int),
    "REVLOOP_LOG_LEVEL": ("log_level", str),
    "REVLOOP_LOG_FILE": ("log_file", str),
}


def load_config(config_path: str = ".revloop.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .revloop.yml at config_path
      3. REVLOOP_* environment variables
      4. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a mapping, got {type(file_config).__name__}")
        config.update(file_config)

    for env_var, (key, cast) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            try:
                config[key] = cast(value)
            except ValueError:
                raise ValueError(f"{env_var} must be a {cast.__name__}, got {value!r}")

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Credentials for the API-based reviewers
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


def resolve_storage_root(config: dict, cwd: Optional[str] = None) -> Path:
    """Return the storage root, resolving a relative storage_path against cwd."""
    root = Path(config.get("storage_path") or DEFAULT_CONFIG["storage_path"]).expanduser()
    if root.is_absolute():
        return root
    return Path(cwd or os.getcwd()) / root
