"""
Openjourney Configuration Management

Centralized configuration system with JSON loading and validation.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .exceptions import ConfigurationError, InvalidConfigError
from .constants import (
    FAL_IMAGE_EDIT_MODEL,
    FAL_IMAGE_MODEL,
    FAL_IMAGE_TO_VIDEO_MODEL,
    FAL_VIDEO_MODEL,
    GOOGLE_IMAGE_EDIT_MODEL,
    GOOGLE_IMAGE_MODEL,
    GOOGLE_IMAGE_TO_VIDEO_MODEL,
    GOOGLE_VIDEO_MODEL,
    IMAGE_BATCH_SIZE,
    IMAGE_TO_VIDEO_COUNT,
    MAX_POLL_ATTEMPTS,
    POLL_INTERVAL_SECONDS,
    PROJECT_NAME,
    REQUEST_TIMEOUT_SECONDS,
    VERSION,
)


@dataclass
class GenerationConfig:
    """Batch sizes, polling bounds and timeouts for generation requests."""
    image_batch_size: int = IMAGE_BATCH_SIZE
    image_to_video_count: int = IMAGE_TO_VIDEO_COUNT
    poll_interval_seconds: float = POLL_INTERVAL_SECONDS
    max_poll_attempts: int = MAX_POLL_ATTEMPTS
    request_timeout_seconds: float = REQUEST_TIMEOUT_SECONDS
    seed_samples: bool = True

    def validate(self) -> None:
        if self.image_batch_size < 1:
            raise InvalidConfigError("image_batch_size must be at least 1")
        if self.image_to_video_count < 1:
            raise InvalidConfigError("image_to_video_count must be at least 1")
        if self.max_poll_attempts < 1:
            raise InvalidConfigError("max_poll_attempts must be at least 1")
        if self.poll_interval_seconds < 0:
            raise InvalidConfigError("poll_interval_seconds cannot be negative")


@dataclass
class GoogleModels:
    """Model identifiers used against the Google Generative Language API."""
    image: str = GOOGLE_IMAGE_MODEL
    image_edit: str = GOOGLE_IMAGE_EDIT_MODEL
    video: str = GOOGLE_VIDEO_MODEL
    image_to_video: str = GOOGLE_IMAGE_TO_VIDEO_MODEL


@dataclass
class FalModels:
    """Endpoint identifiers used against FAL.ai."""
    image: str = FAL_IMAGE_MODEL
    image_edit: str = FAL_IMAGE_EDIT_MODEL
    video: str = FAL_VIDEO_MODEL
    image_to_video: str = FAL_IMAGE_TO_VIDEO_MODEL


@dataclass
class OpenjourneyConfig:
    """Main configuration class for Openjourney."""

    app_name: str = PROJECT_NAME
    version: str = VERSION

    generation: GenerationConfig = field(default_factory=GenerationConfig)
    google: GoogleModels = field(default_factory=GoogleModels)
    fal: FalModels = field(default_factory=FalModels)

    verbose_logging: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to a JSON-serialisable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'OpenjourneyConfig':
        """Create OpenjourneyConfig from dictionary."""
        config = cls()

        config.app_name = data.get('app_name', config.app_name)
        config.version = data.get('version', config.version)
        config.verbose_logging = data.get('verbose_logging', config.verbose_logging)

        try:
            if 'generation' in data:
                config.generation = GenerationConfig(**data['generation'])
            if 'google' in data:
                config.google = GoogleModels(**data['google'])
            if 'fal' in data:
                config.fal = FalModels(**data['fal'])
        except TypeError as e:
            raise InvalidConfigError(f"Unknown configuration field: {e}")

        config.generation.validate()
        return config


def get_default_config() -> OpenjourneyConfig:
    """Return a configuration populated with defaults."""
    return OpenjourneyConfig()


def load_config(config_path: Union[str, Path, None] = None) -> OpenjourneyConfig:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to configuration file. If None, uses default.

    Returns:
        Loaded OpenjourneyConfig instance
    """
    if config_path is None:
        config_path = Path("config/openjourney_config.json")
    config_path = Path(config_path)

    if not config_path.exists():
        # Return default config if file doesn't exist
        return get_default_config()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidConfigError(f"Invalid JSON in config file: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load config: {e}")

    return OpenjourneyConfig.from_dict(data)


def save_config(config: OpenjourneyConfig, config_path: Union[str, Path]) -> None:
    """Write configuration to a JSON file."""
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2)


# Global config instance
_config: Optional[OpenjourneyConfig] = None


def get_config() -> OpenjourneyConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: OpenjourneyConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
