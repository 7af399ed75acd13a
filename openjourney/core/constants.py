"""
Openjourney Constants

Global constants used throughout the Openjourney system.
"""

from enum import Enum

# =============================================================================
# VERSION INFO
# =============================================================================
VERSION = "0.3.0"
PROJECT_NAME = "Openjourney"

# =============================================================================
# PROVIDERS
# =============================================================================

class ProviderKind(str, Enum):
    """Generation providers. GOOGLE is the primary one, FAL the secondary."""
    GOOGLE = "google"
    FAL = "fal"


PROVIDER_DISPLAY_NAMES = {
    ProviderKind.GOOGLE: "Google Gemini",
    ProviderKind.FAL: "FAL.ai",
}

GOOGLE_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
FAL_RUN_BASE = "https://fal.run"
FAL_QUEUE_BASE = "https://queue.fal.run"

# Default model identifiers
GOOGLE_IMAGE_MODEL = "imagen-4.0-generate-preview-06-06"
GOOGLE_IMAGE_EDIT_MODEL = "gemini-2.5-flash-image-preview"
GOOGLE_VIDEO_MODEL = "veo-3.0-generate-preview"
GOOGLE_IMAGE_TO_VIDEO_MODEL = "veo-2.0-generate-001"

FAL_IMAGE_MODEL = "fal-ai/flux/dev"
FAL_IMAGE_EDIT_MODEL = "fal-ai/flux-pro/kontext"
FAL_VIDEO_MODEL = "fal-ai/veo3"
FAL_IMAGE_TO_VIDEO_MODEL = "fal-ai/veo2/image-to-video"

# =============================================================================
# GENERATION DEFAULTS
# =============================================================================

IMAGE_BATCH_SIZE = 4
IMAGE_TO_VIDEO_COUNT = 2

# Veo jobs: a check every 10 seconds, 60 checks, roughly a 10 minute ceiling
POLL_INTERVAL_SECONDS = 10.0
MAX_POLL_ATTEMPTS = 60

REQUEST_TIMEOUT_SECONDS = 120.0

VIDEO_ASPECT_RATIO = "16:9"
IMAGE_ASPECT_RATIO = "1:1"

# Prompt templates
IMPROVE_PROMPT_TEMPLATE = "{original}. Please improve this image by: {improvement}"
IMPROVED_LABEL_TEMPLATE = "{original} - improved: {improvement}"
ANIMATED_PROMPT_TEMPLATE = "{prompt} - animated video"

# =============================================================================
# SETTINGS STORE KEYS
# =============================================================================

KEY_GEMINI_API_KEY = "gemini_api_key"
KEY_FAL_API_KEY = "fal_api_key"
KEY_PROVIDER = "openjourney-provider"
KEY_MODEL_VARIANT = "openjourney-model-variant"
KEY_DARK_MODE = "openjourney-dark-mode"

API_KEY_STORE_KEYS = {
    ProviderKind.GOOGLE: KEY_GEMINI_API_KEY,
    ProviderKind.FAL: KEY_FAL_API_KEY,
}
