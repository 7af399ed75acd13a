"""
Environment bootstrap for Openjourney.

Reads a ``.env`` file once per process and exposes the provider API keys
found in the environment. Lookup order for the file:

    1. the path named by ``OPENJOURNEY_ENV_FILE``
    2. ``.env`` in the current working directory
    3. ``.env`` next to the installed package (source checkouts)
"""

import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

from .constants import ProviderKind

ENV_FILE_VARIABLE = "OPENJOURNEY_ENV_FILE"

# First name wins. Older deployments used the generic Google / FAL names.
PROVIDER_KEY_VARIABLES: Dict[ProviderKind, Tuple[str, ...]] = {
    ProviderKind.GOOGLE: ("GOOGLE_AI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"),
    ProviderKind.FAL: ("FAL_KEY", "FAL_API_KEY"),
}

_env_loaded = False


def candidate_env_files() -> List[Path]:
    candidates = []
    explicit = os.getenv(ENV_FILE_VARIABLE)
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.append(Path.cwd() / ".env")
    candidates.append(Path(__file__).resolve().parents[2] / ".env")
    return candidates


def ensure_env_loaded(override: bool = False) -> bool:
    """
    Load the first existing candidate ``.env`` file.

    Returns True only on the call that actually loaded a file. With
    ``override`` the file's values replace variables already exported.
    """
    global _env_loaded
    if _env_loaded:
        return False

    for path in candidate_env_files():
        if path.is_file():
            load_dotenv(path, override=override)
            _env_loaded = True
            return True
    return False


def get_api_key(key_name: str, fallback_keys: Optional[List[str]] = None) -> Optional[str]:
    """First non-empty value among ``key_name`` and ``fallback_keys``."""
    ensure_env_loaded()
    for name in [key_name, *(fallback_keys or [])]:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def get_provider_api_key(provider: ProviderKind) -> Optional[str]:
    primary, *fallbacks = PROVIDER_KEY_VARIABLES[provider]
    return get_api_key(primary, fallbacks)


def get_google_api_key() -> Optional[str]:
    return get_provider_api_key(ProviderKind.GOOGLE)


def get_fal_api_key() -> Optional[str]:
    return get_provider_api_key(ProviderKind.FAL)
