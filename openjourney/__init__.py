"""
Openjourney - MidJourney-style image and video generation front end

Submits prompts to hosted image and video models, tracks each request as a
generation on an in-memory timeline, and turns finished images into
follow-up videos or improved images.

Version: 0.3.0
"""

__version__ = "0.3.0"
__project__ = "Openjourney"

from pathlib import Path

# Load environment variables early - before any other imports that might need them
from openjourney.core.env_loader import ensure_env_loaded
ensure_env_loaded()

# Package root directory
PACKAGE_ROOT = Path(__file__).parent
PROJECT_ROOT = PACKAGE_ROOT.parent

__all__ = [
    '__version__',
    'PACKAGE_ROOT',
    'PROJECT_ROOT',
]
