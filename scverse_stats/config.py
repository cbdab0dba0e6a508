"""
Configuration management for scverse-stats.

Loads tracked packages and source settings from:
1. The file named by SCVERSE_STATS_CONFIG (if set)
2. config/config.yaml under the project root

Credentials are read from the environment (a local .env file is honoured).
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# project_root is the parent directory of scverse_stats/
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Global configuration for SSL verification
# Default: True (verify SSL certificates)
# Can be set to False by CLI --insecure flag
VERIFY_SSL = True

DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "config.yaml"
DEFAULT_OUTPUT_DIR = Path.cwd() / "output"

DEFAULTS: dict[str, Any] = {
    "organization": "scverse",
    "core_packages": [],
    "bluesky_actor": "did:plc:43xl2lpdbllhfdpa2cuwaw6m",
    "citation_ids": ["37037904", "38509327", "29409532", "35102346"],
    "ecosystem_url": "https://scverse.org/ecosystem-packages/packages.json",
    "zulip_core_stream": "website",
    "allowed_origins": [
        r"^https?://localhost:\d+$",
        "https://scverse.org",
        "https://scverse-stats.complextissue.com",
    ],
}

# Global overrides (set via setters, typically from the CLI)
_CONFIG_PATH: Path | None = None
_OUTPUT_DIR: Path | None = None


def load_config_file(config_path: Path) -> dict:
    """Load a YAML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Failed to load config from {config_path}: expected a mapping"
        )
    return data


def get_config_path() -> Path:
    """
    Get the configuration file path.

    Priority:
    1. Explicitly set value via set_config_path()
    2. SCVERSE_STATS_CONFIG environment variable
    3. Default: <project_root>/config/config.yaml

    Returns:
        Path to the YAML configuration file.
    """
    if _CONFIG_PATH is not None:
        return _CONFIG_PATH

    env_config = os.getenv("SCVERSE_STATS_CONFIG")
    if env_config:
        return Path(env_config).expanduser()

    return DEFAULT_CONFIG_PATH


def set_config_path(path: Path | str) -> None:
    """
    Set the configuration file path explicitly.

    Args:
        path: Path to a YAML configuration file.
    """
    global _CONFIG_PATH
    _CONFIG_PATH = Path(path).expanduser()


def get_setting(key: str) -> Any:
    """
    Look up a setting from the configuration file, falling back to DEFAULTS.

    Args:
        key: Top-level key in the YAML file.

    Returns:
        The configured value, or the built-in default.
    """
    config = load_config_file(get_config_path())
    if key in config and config[key] is not None:
        return config[key]
    return DEFAULTS.get(key)


def get_organization() -> str:
    """Return the GitHub organization whose repositories are tracked."""
    return str(get_setting("organization"))


def get_core_packages() -> list[str]:
    """
    Load the core package list.

    Returns:
        Repository names in configuration order, without duplicates.
    """
    packages = get_setting("core_packages") or []
    seen = set()
    unique = []
    for name in packages:
        name = str(name).strip()
        if name and name not in seen:
            seen.add(name)
            unique.append(name)
    return unique


def get_citation_ids() -> list[str]:
    """Return the PubMed ids whose citations are counted."""
    return [str(pmid) for pmid in get_setting("citation_ids") or []]


def get_output_dir() -> Path:
    """
    Get the directory where JSON snapshots are written.

    Priority:
    1. Explicitly set value via set_output_dir()
    2. SCVERSE_STATS_OUTPUT_DIR environment variable
    3. Default: ./output

    Returns:
        Path to the output directory.
    """
    if _OUTPUT_DIR is not None:
        return _OUTPUT_DIR

    env_output_dir = os.getenv("SCVERSE_STATS_OUTPUT_DIR")
    if env_output_dir:
        return Path(env_output_dir).expanduser()

    return DEFAULT_OUTPUT_DIR


def set_output_dir(path: Path | str) -> None:
    """
    Set the output directory explicitly.

    Args:
        path: Path to the output directory.
    """
    global _OUTPUT_DIR
    _OUTPUT_DIR = Path(path).expanduser()


def get_zulip_credentials() -> dict[str, str] | None:
    """
    Read Zulip credentials from the environment.

    Returns:
        Dict with email, api_key and realm, or None if any is missing.
    """
    credentials = {
        "email": os.getenv("ZULIP_EMAIL", ""),
        "api_key": os.getenv("ZULIP_API_KEY", ""),
        "realm": os.getenv("ZULIP_REALM", ""),
    }
    if not all(credentials.values()):
        return None
    return credentials


def get_pepy_api_key() -> str | None:
    """Return the pepy.tech API key, if configured."""
    return os.getenv("PEPY_API_KEY") or None


def set_verify_ssl(verify: bool) -> None:
    """
    Set the SSL verification setting globally.

    Args:
        verify: Whether to verify SSL certificates.
    """
    global VERIFY_SSL
    VERIFY_SSL = verify


def get_verify_ssl() -> bool:
    """
    Get the current SSL verification setting.

    Returns:
        Whether SSL verification is enabled.
    """
    return VERIFY_SSL
