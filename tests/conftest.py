"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import base64
import io
import json
import shutil
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, List

import httpx
import pytest
from PIL import Image

from openjourney.core.config import GenerationConfig, OpenjourneyConfig
from openjourney.core.constants import ProviderKind
from openjourney.core.settings import MemoryStore, SettingsContext


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_config() -> Dict[str, Any]:
    """Sample configuration for testing."""
    return {
        "app_name": "Openjourney",
        "version": "0.3.0",
        "generation": {
            "image_batch_size": 4,
            "image_to_video_count": 2,
            "poll_interval_seconds": 10.0,
            "max_poll_attempts": 60,
            "seed_samples": False,
        },
        "google": {
            "image": "imagen-test",
        },
    }


@pytest.fixture
def test_config() -> OpenjourneyConfig:
    """Default configuration without sample generations."""
    return OpenjourneyConfig(generation=GenerationConfig(seed_samples=False))


def make_png_base64(color=(200, 40, 40), size=(8, 8), image_format="PNG") -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def png_base64() -> str:
    """A tiny red PNG, base64 encoded."""
    return make_png_base64()


@pytest.fixture
def settings() -> SettingsContext:
    """Settings context with no stored keys and no environment fallback."""
    return SettingsContext(MemoryStore(), use_env=False)


@pytest.fixture
def keyed_settings() -> SettingsContext:
    """Settings context with a stored key for both providers."""
    context = SettingsContext(MemoryStore(), use_env=False)
    context.set_api_key(ProviderKind.GOOGLE, "stored-google-key")
    context.set_api_key(ProviderKind.FAL, "stored-fal-key")
    return context


class RecordingTransport:
    """httpx mock handler that records requests and delegates to a responder."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.responder = responder
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.content]

    @property
    def count(self) -> int:
        return len(self.requests)


@pytest.fixture
def recording_transport():
    """Factory: recording_transport(responder) -> RecordingTransport."""
    return RecordingTransport


class FakeSleep:
    """Stands in for asyncio.sleep; records requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


class SteppingClock:
    """Returns a strictly increasing time on each call."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


def imagen_response(images: List[str]) -> Dict[str, Any]:
    """Imagen :predict body; empty strings become empty prediction slots."""
    return {
        "predictions": [
            {"bytesBase64Encoded": data, "mimeType": "image/png"} if data else {}
            for data in images
        ]
    }


def gemini_response(image_data: str) -> Dict[str, Any]:
    return {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"text": "Here is the improved image"},
                        {"inlineData": {"mimeType": "image/png", "data": image_data}},
                    ]
                }
            }
        ]
    }


def veo_operation(done: bool, uris: List[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"name": "models/veo/operations/op-123", "done": done}
    if done:
        body["response"] = {
            "generateVideoResponse": {
                "generatedSamples": [{"video": {"uri": uri}} for uri in (uris or [])]
            }
        }
    return body


@pytest.fixture
def payloads() -> SimpleNamespace:
    """Builders for provider response bodies."""
    return SimpleNamespace(
        imagen=imagen_response,
        gemini=gemini_response,
        veo=veo_operation,
        png=make_png_base64,
    )
