"""
API Dependencies

Shared services and the rate limiter used by route handlers.
"""

from dataclasses import dataclass

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from openjourney.core.config import OpenjourneyConfig
from openjourney.core.settings import SettingsContext
from openjourney.generation.notifications import NotificationCenter
from openjourney.generation.poller import Sleep
from openjourney.generation.timeline import GenerationTimeline
from openjourney.generation.workflows import GenerationWorkflows
from openjourney.providers.gateway import ProviderGateway

# Rate limiter for provider-backed endpoints
limiter = Limiter(key_func=get_remote_address)


@dataclass
class AppServices:
    """Everything a request handler may touch, built once per app."""
    config: OpenjourneyConfig
    settings: SettingsContext
    gateway: ProviderGateway
    timeline: GenerationTimeline
    workflows: GenerationWorkflows
    notifications: NotificationCenter
    sleep: Sleep


def get_services(request: Request) -> AppServices:
    return request.app.state.services
