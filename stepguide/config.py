#!/usr/bin/env python3
"""
Configuration management for stepguide.
Handles the tutorial service endpoint, API token and user preferences
with secure local storage.
"""

import os
import json
from pathlib import Path
from typing import Optional, Dict, Any
from getpass import getpass


DEFAULT_API_URL = 'http://localhost:4321'
DEFAULT_MAX_STEPS = 10
DEFAULT_CONNECT_TIMEOUT = 10.0

# Environment variables take priority over the config file
ENV_API_URL = 'STEPGUIDE_API_URL'
ENV_API_TOKEN = 'STEPGUIDE_API_TOKEN'
ENV_TUTORIALS_ENABLED = 'STEPGUIDE_TUTORIALS_ENABLED'
ENV_MAX_STEPS = 'STEPGUIDE_MAX_STEPS'

_TRUTHY = {'1', 'true', 'yes', 'on'}


def get_config_dir() -> Path:
    """Get the stepguide config directory (~/.stepguide)"""
    config_dir = Path.home() / '.stepguide'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the config file path"""
    return get_config_dir() / 'config.json'


def load_config() -> Dict[str, Any]:
    """Load configuration from file"""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return {}
    return {}


def save_config(config: Dict[str, Any]) -> None:
    """Save configuration to file"""
    config_path = get_config_path()
    with open(config_path, 'w') as f:
        json.dump(config, f, indent=2)
    # Secure the file (read/write only for owner)
    config_path.chmod(0o600)


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a specific config value"""
    config = load_config()
    return config.get(key, default)


def set_config_value(key: str, value: Any) -> None:
    """Set a specific config value"""
    config = load_config()
    config[key] = value
    save_config(config)


def get_api_url() -> str:
    """Base URL of the tutorial service, without a trailing slash"""
    url = os.getenv(ENV_API_URL) or get_config_value('api_url') or DEFAULT_API_URL
    return url.rstrip('/')


def get_api_token() -> Optional[str]:
    """Bearer token for the tutorial service, if one is configured"""
    token = os.getenv(ENV_API_TOKEN)
    if token:
        return token
    return get_config_value('api_token')


def tutorials_enabled() -> bool:
    """
    Feature flag for step-by-step tutorials.

    Enabled unless switched off through the environment or the config file.
    """
    env_value = os.getenv(ENV_TUTORIALS_ENABLED)
    if env_value is not None:
        return env_value.strip().lower() in _TRUTHY
    value = get_config_value('tutorials_enabled', True)
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def get_max_steps() -> int:
    """
    Upper bound on the step index of a tutorial.

    Raises:
        ValueError: if the configured value is not a positive integer
    """
    raw = os.getenv(ENV_MAX_STEPS)
    if raw is None:
        raw = get_config_value('max_steps', DEFAULT_MAX_STEPS)
    try:
        max_steps = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"max_steps must be an integer, got {raw!r}")
    if max_steps < 1:
        raise ValueError(f"max_steps must be at least 1, got {max_steps}")
    return max_steps


def get_connect_timeout() -> float:
    """Connect timeout for the tutorial service, in seconds"""
    return float(get_config_value('connect_timeout', DEFAULT_CONNECT_TIMEOUT))


def prompt_for_api_token() -> Optional[str]:
    """
    Interactively prompt user for an API token and offer to save it.

    Returns:
        Token string or None if user declines
    """
    print("\n" + "=" * 60)
    print("stepguide Setup")
    print("=" * 60)
    print(f"\nTutorial service: {get_api_url()}")
    print("\nYour token will be stored locally in ~/.stepguide/config.json")
    print("(This file is private and never shared or committed)")
    print()

    try:
        token = getpass("Paste your API token (input hidden): ").strip()

        if not token:
            print("\nNo token provided. Requests will be sent unauthenticated.")
            return None

        save = input("\nSave token to ~/.stepguide/config.json for future sessions? [Y/n]: ").strip().lower()

        if save != 'n':
            set_config_value('api_token', token)
            print("Token saved!")
        else:
            print("Token will only be used for this session.")

        return token

    except (KeyboardInterrupt, EOFError):
        print("\nCancelled.")
        return None


def clear_api_token() -> None:
    """Remove stored API token from config"""
    config = load_config()
    if 'api_token' in config:
        del config['api_token']
        save_config(config)
        print("API token removed from config.")
    else:
        print("No stored API token found.")
