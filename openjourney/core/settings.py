"""
Openjourney Settings Context

Holds the user's provider choice, model variant, theme flag and API keys.
The context is loaded once from a key->string store, mutated only through
its own methods, and broadcasts every change to subscribed listeners.
The gateway, workflows and API only read from it.
"""

import json
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Union

from .constants import (
    API_KEY_STORE_KEYS,
    KEY_DARK_MODE,
    KEY_MODEL_VARIANT,
    KEY_PROVIDER,
    ProviderKind,
)
from .env_loader import get_fal_api_key, get_google_api_key
from .exceptions import ConfigurationError
from .logging_config import get_logger

logger = get_logger("core.settings")

DEFAULT_MODEL_VARIANT = "default"

SettingsListener = Callable[[str, "SettingsContext"], None]


class KeyValueStore(Protocol):
    """A persisted key->string store."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store. Used by tests and when no settings file is configured."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class JsonFileStore:
    """Store backed by a flat JSON object on disk, rewritten on every change."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Settings file is not valid JSON: {self.path}",
                {"error": str(e)},
            )
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file must hold a JSON object: {self.path}")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self._write()

    def delete(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._write()


@dataclass(frozen=True)
class ProviderSettings:
    """Which provider to call and which model variant to ask it for."""
    provider: ProviderKind = ProviderKind.GOOGLE
    model_variant: str = DEFAULT_MODEL_VARIANT

    def to_dict(self) -> Dict[str, str]:
        return {"provider": self.provider.value, "modelVariant": self.model_variant}


def parse_provider(value: Optional[str]) -> ProviderKind:
    """Map a stored or user-supplied provider name onto ProviderKind.

    Accepts the enum values plus the aliases "primary" and "secondary".
    """
    if value is None:
        return ProviderKind.GOOGLE
    if isinstance(value, ProviderKind):
        return value
    normalized = value.strip().lower()
    aliases = {
        "primary": ProviderKind.GOOGLE,
        "gemini": ProviderKind.GOOGLE,
        "secondary": ProviderKind.FAL,
    }
    if normalized in aliases:
        return aliases[normalized]
    try:
        return ProviderKind(normalized)
    except ValueError:
        raise ConfigurationError(f"Unknown provider: {value}")


_ENV_LOOKUPS = {
    ProviderKind.GOOGLE: get_google_api_key,
    ProviderKind.FAL: get_fal_api_key,
}


class SettingsContext:
    """
    Single owner of user settings and credentials.

    Listener signature: listener(event: str, context: SettingsContext)
    Event types: 'loaded', 'settings', 'api_key'
    """

    def __init__(self, store: Optional[KeyValueStore] = None, use_env: bool = True):
        self.store = store if store is not None else MemoryStore()
        self.use_env = use_env
        self._provider_settings = ProviderSettings()
        self._dark_mode = False
        self._listeners: List[SettingsListener] = []
        self.load()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @property
    def provider_settings(self) -> ProviderSettings:
        return self._provider_settings

    @property
    def provider(self) -> ProviderKind:
        return self._provider_settings.provider

    @property
    def dark_mode(self) -> bool:
        return self._dark_mode

    def stored_api_key(self, provider: Optional[ProviderKind] = None) -> Optional[str]:
        provider = provider or self.provider
        value = self.store.get(API_KEY_STORE_KEYS[provider])
        return value or None

    def has_api_key(self, provider: Optional[ProviderKind] = None) -> bool:
        return self.resolve_api_key(provider) is not None

    def resolve_api_key(
        self,
        provider: Optional[ProviderKind] = None,
        explicit: Optional[str] = None,
    ) -> Optional[str]:
        """Resolve credentials: explicit argument, then stored key, then environment."""
        if explicit and explicit.strip():
            return explicit.strip()
        provider = provider or self.provider
        stored = self.stored_api_key(provider)
        if stored:
            return stored
        if self.use_env:
            return _ENV_LOOKUPS[provider]()
        return None

    def to_public_dict(self) -> Dict[str, object]:
        """Settings as shown to clients. Keys are reported as flags only."""
        data: Dict[str, object] = dict(self._provider_settings.to_dict())
        data["darkMode"] = self._dark_mode
        data["hasApiKey"] = {kind.value: self.has_api_key(kind) for kind in ProviderKind}
        return data

    # ------------------------------------------------------------------
    # Loading and mutation
    # ------------------------------------------------------------------

    def load(self) -> ProviderSettings:
        """Read provider settings and preferences from the store."""
        stored_provider = self.store.get(KEY_PROVIDER)
        try:
            provider = parse_provider(stored_provider)
        except ConfigurationError:
            logger.warning(f"Ignoring unknown stored provider '{stored_provider}'")
            provider = ProviderKind.GOOGLE

        self._provider_settings = ProviderSettings(
            provider=provider,
            model_variant=self.store.get(KEY_MODEL_VARIANT) or DEFAULT_MODEL_VARIANT,
        )
        self._dark_mode = (self.store.get(KEY_DARK_MODE) or "").lower() == "true"
        logger.debug(f"Settings loaded: {self._provider_settings}")
        self._notify("loaded")
        return self._provider_settings

    def update(
        self,
        provider: Optional[Union[str, ProviderKind]] = None,
        model_variant: Optional[str] = None,
        dark_mode: Optional[bool] = None,
    ) -> ProviderSettings:
        """Change any subset of the preferences and persist them."""
        changes = {}
        if provider is not None:
            changes["provider"] = parse_provider(provider)
            self.store.set(KEY_PROVIDER, changes["provider"].value)
        if model_variant is not None:
            changes["model_variant"] = model_variant or DEFAULT_MODEL_VARIANT
            self.store.set(KEY_MODEL_VARIANT, changes["model_variant"])
        if dark_mode is not None:
            self._dark_mode = bool(dark_mode)
            self.store.set(KEY_DARK_MODE, "true" if self._dark_mode else "false")

        if changes:
            self._provider_settings = replace(self._provider_settings, **changes)
        logger.info(f"Settings updated: {self._provider_settings}")
        self._notify("settings")
        return self._provider_settings

    def set_api_key(self, provider: Union[str, ProviderKind], api_key: str) -> None:
        """Store an API key for a provider. A blank key clears it."""
        kind = parse_provider(provider)
        if not api_key or not api_key.strip():
            self.clear_api_key(kind)
            return
        self.store.set(API_KEY_STORE_KEYS[kind], api_key.strip())
        logger.info(f"API key stored for {kind.value}")
        self._notify("api_key")

    def clear_api_key(self, provider: Union[str, ProviderKind]) -> None:
        kind = parse_provider(provider)
        self.store.delete(API_KEY_STORE_KEYS[kind])
        logger.info(f"API key cleared for {kind.value}")
        self._notify("api_key")

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        """Register a change listener. Returns a callable that unsubscribes it."""
        if listener not in self._listeners:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception as e:
                logger.warning(f"Settings listener error: {e}")
