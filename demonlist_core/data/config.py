# =============================================================================
# demonlist_core/data/config.py
# Remote data API configuration
# =============================================================================

from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import toml
from dotenv import load_dotenv

from demonlist_core.errors import ConfigurationError
from demonlist_core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SECRETS_PATH = Path("secrets.toml")


@dataclass(frozen=True)
class SupabaseConfig:
    """Static configuration for the remote REST data API."""
    url: str
    key: str
    timeout: int = 15

    def __post_init__(self):
        if not isinstance(self.url, str) or not self.url.strip():
            raise ConfigurationError("Supabase URL is required", config_key="url", expected_type="str")
        if not isinstance(self.key, str) or not self.key.strip():
            raise ConfigurationError("Supabase API key is required", config_key="key", expected_type="str")

    @property
    def rest_url(self) -> str:
        return f"{self.url.rstrip('/')}/rest/v1"


def load_secrets_toml(secrets_path: Path) -> tuple[Optional[str], Optional[str]]:
    """Load credentials from a secrets.toml ``[supabase]`` table."""
    if not secrets_path.exists():
        return None, None

    try:
        secrets = toml.load(secrets_path)
    except (toml.TomlDecodeError, OSError) as e:
        logger.warning(f"Could not read {secrets_path}: {e}")
        return None, None

    section = secrets.get("supabase", {})
    return section.get("url"), section.get("key")


def load_supabase_config(secrets_path: Optional[Path] = None) -> SupabaseConfig:
    """
    Resolve the remote configuration.

    Lookup order:
        1. ``[supabase] url / key`` in secrets.toml
        2. ``SUPABASE_URL`` / ``SUPABASE_KEY`` environment variables
           (a local ``.env`` file is loaded first)

    Raises:
        ConfigurationError: if neither source provides both values
    """
    url, key = load_secrets_toml(secrets_path or DEFAULT_SECRETS_PATH)

    if not url or not key:
        load_dotenv()
        url = url or os.getenv("SUPABASE_URL")
        key = key or os.getenv("SUPABASE_KEY")

    if not url or not key:
        raise ConfigurationError(
            "Supabase credentials not found. Configure secrets.toml "
            "or set SUPABASE_URL and SUPABASE_KEY",
            config_key="supabase",
        )

    return SupabaseConfig(url=url, key=key)
