"""
API Request Models

Request bodies use the camelCase field names the web client sends.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from openjourney.generation.models import MediaKind


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# PROVIDER ROUTES
# =============================================================================

class GenerateImagesRequest(CamelModel):
    prompt: str = ""
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    image_bytes: Optional[str] = Field(default=None, alias="imageBytes")
    provider: Optional[str] = None
    model: Optional[str] = None


class GenerateVideosRequest(CamelModel):
    prompt: str = ""
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    provider: Optional[str] = None
    wait: bool = True


class ImageToVideoRequest(CamelModel):
    prompt: str = ""
    image_bytes: Optional[str] = Field(default=None, alias="imageBytes")
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    provider: Optional[str] = None
    wait: bool = True


class VideoStatusRequest(CamelModel):
    operation: Dict[str, Any]
    api_key: Optional[str] = Field(default=None, alias="apiKey")


class ImproveImageRequest(CamelModel):
    original_prompt: str = Field(default="", alias="originalPrompt")
    improvement_prompt: str = Field(default="", alias="improvementPrompt")
    image_bytes: Optional[str] = Field(default=None, alias="imageBytes")
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    provider: Optional[str] = None


# =============================================================================
# TIMELINE ROUTES
# =============================================================================

class StartGenerationRequest(CamelModel):
    type: MediaKind = MediaKind.IMAGE
    prompt: str = ""
    image_bytes: Optional[str] = Field(default=None, alias="imageBytes")
    api_key: Optional[str] = Field(default=None, alias="apiKey")


class ConvertItemRequest(CamelModel):
    prompt: Optional[str] = None
    api_key: Optional[str] = Field(default=None, alias="apiKey")


class ImproveItemRequest(CamelModel):
    improvement_prompt: str = Field(default="", alias="improvementPrompt")
    api_key: Optional[str] = Field(default=None, alias="apiKey")


# =============================================================================
# SETTINGS ROUTES
# =============================================================================

class SettingsUpdate(CamelModel):
    provider: Optional[str] = None
    model_variant: Optional[str] = Field(default=None, alias="modelVariant")
    dark_mode: Optional[bool] = Field(default=None, alias="darkMode")
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    api_keys: Optional[Dict[str, str]] = Field(default=None, alias="apiKeys")
