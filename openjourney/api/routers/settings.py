"""Settings router for the Openjourney API.

API keys are write-only: responses report whether a key is available, never the key.
"""

from fastapi import APIRouter, Depends

from openjourney.core.constants import PROVIDER_DISPLAY_NAMES, ProviderKind
from openjourney.core.exceptions import ConfigurationError, InvalidInputError
from openjourney.core.settings import parse_provider

from ..deps import AppServices, get_services
from ..models import SettingsUpdate

router = APIRouter()


def _parse_provider(value: str) -> ProviderKind:
    try:
        return parse_provider(value)
    except ConfigurationError as e:
        raise InvalidInputError(e.message)


@router.get("")
async def get_settings(services: AppServices = Depends(get_services)):
    """Get provider settings and API key availability."""
    return services.settings.to_public_dict()


@router.post("")
async def save_settings(body: SettingsUpdate, services: AppServices = Depends(get_services)):
    """Update preferences and/or store API keys."""
    context = services.settings
    provider = _parse_provider(body.provider) if body.provider else None
    # Reject the whole update before anything is written
    keys = [(_parse_provider(name), key) for name, key in (body.api_keys or {}).items()]

    context.update(provider=provider, model_variant=body.model_variant, dark_mode=body.dark_mode)

    if body.api_key is not None:
        context.set_api_key(context.provider, body.api_key)
    for kind, key in keys:
        context.set_api_key(kind, key)

    return {"success": True, "settings": context.to_public_dict()}


@router.delete("/api-key/{provider}")
async def clear_api_key(provider: str, services: AppServices = Depends(get_services)):
    """Forget the stored API key for a provider."""
    services.settings.clear_api_key(_parse_provider(provider))
    return {"success": True, "settings": services.settings.to_public_dict()}


@router.get("/providers")
async def list_providers(services: AppServices = Depends(get_services)):
    """Get available providers and their model ids."""
    config = services.config
    models = {
        ProviderKind.GOOGLE: config.google,
        ProviderKind.FAL: config.fal,
    }
    return {
        "providers": [
            {
                "key": kind.value,
                "displayName": PROVIDER_DISPLAY_NAMES[kind],
                "models": {
                    "image": models[kind].image,
                    "imageEdit": models[kind].image_edit,
                    "video": models[kind].video,
                    "imageToVideo": models[kind].image_to_video,
                },
                "hasApiKey": services.settings.has_api_key(kind),
            }
            for kind in ProviderKind
        ]
    }
