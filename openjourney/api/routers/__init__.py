"""API routers for Openjourney."""

from openjourney.api.routers import generations, providers, settings

__all__ = ["generations", "providers", "settings"]
