"""
Openjourney Providers

Clients for the hosted image/video models and the gateway that normalizes
their responses into Success / Pending / Failure outcomes.
"""

from .base import (
    Failure,
    OperationHandle,
    OperationStatus,
    Outcome,
    Pending,
    ProviderClient,
    Success,
)
from .fal import FalClient
from .gateway import ProviderGateway, classify_exception, compose_improvement_prompt
from .google import GoogleClient

__all__ = [
    'Failure',
    'OperationHandle',
    'OperationStatus',
    'Outcome',
    'Pending',
    'ProviderClient',
    'Success',
    'FalClient',
    'GoogleClient',
    'ProviderGateway',
    'classify_exception',
    'compose_improvement_prompt',
]
