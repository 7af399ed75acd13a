"""
Provider Base Types

Normalized outcomes returned by the gateway and the abstract client every
provider integration implements.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from openjourney.core.config import OpenjourneyConfig
from openjourney.core.constants import PROVIDER_DISPLAY_NAMES, ProviderKind
from openjourney.core.exceptions import (
    FailureKind,
    InvalidInputError,
    OpenjourneyError,
    ProviderError,
)
from openjourney.generation.models import ImageItem

from .imaging import SourceImage


# =============================================================================
# OPERATION HANDLES
# =============================================================================

@dataclass(frozen=True)
class OperationHandle:
    """Opaque token for a provider's in-flight asynchronous job."""
    provider: ProviderKind
    name: str
    status_url: Optional[str] = None
    response_url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"provider": self.provider.value, "name": self.name}
        if self.status_url:
            data["statusUrl"] = self.status_url
        if self.response_url:
            data["responseUrl"] = self.response_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OperationHandle':
        """Rebuild a handle a client sent back verbatim."""
        if not isinstance(data, dict) or not data.get("name"):
            raise InvalidInputError("Operation handle must include a name")
        try:
            provider = ProviderKind(data.get("provider", ProviderKind.GOOGLE.value))
        except ValueError:
            raise InvalidInputError(f"Unknown provider in operation handle: {data.get('provider')}")
        return cls(
            provider=provider,
            name=data["name"],
            status_url=data.get("statusUrl") or data.get("status_url"),
            response_url=data.get("responseUrl") or data.get("response_url"),
        )


@dataclass(frozen=True)
class OperationStatus:
    """One status check of a long-running operation."""
    done: bool
    videos: Tuple[str, ...] = ()
    error: Optional[str] = None


# =============================================================================
# OUTCOMES
# =============================================================================

@dataclass(frozen=True)
class Success:
    items: Tuple[Any, ...]
    enhanced_prompt: Optional[str] = None


@dataclass(frozen=True)
class Pending:
    handle: OperationHandle


@dataclass(frozen=True)
class Failure:
    error: OpenjourneyError

    @property
    def kind(self) -> FailureKind:
        return self.error.kind

    @property
    def message(self) -> str:
        return self.error.message


Outcome = Union[Success, Pending, Failure]


# =============================================================================
# ERROR BODIES
# =============================================================================

def extract_error_message(response: httpx.Response) -> str:
    """Pull the provider's own message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        detail = body.get("detail")
        if isinstance(detail, str) and detail:
            return detail
        if isinstance(detail, list) and detail:
            first = detail[0]
            if isinstance(first, dict) and first.get("msg"):
                return str(first["msg"])
        if body.get("message"):
            return str(body["message"])
    return f"HTTP {response.status_code}"


# =============================================================================
# CLIENT INTERFACE
# =============================================================================

class ProviderClient(ABC):
    """Base class for a hosted image/video provider."""

    provider: ProviderKind

    def __init__(self, http_client: httpx.AsyncClient, config: OpenjourneyConfig):
        self.http = http_client
        self.config = config

    @property
    def display_name(self) -> str:
        return PROVIDER_DISPLAY_NAMES[self.provider]

    @property
    def timeout(self) -> float:
        return self.config.generation.request_timeout_seconds

    def _raise_for_error(self, response: httpx.Response) -> None:
        if response.status_code >= 400:
            raise ProviderError(
                self.display_name,
                extract_error_message(response),
                status_code=response.status_code,
            )

    async def _post_json(self, url: str, headers: Dict[str, str], body: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.http.post(url, headers=headers, json=body, timeout=self.timeout)
        self._raise_for_error(response)
        return response.json()

    async def _get_json(self, url: str, headers: Dict[str, str]) -> Dict[str, Any]:
        response = await self.http.get(url, headers=headers, timeout=self.timeout)
        self._raise_for_error(response)
        return response.json()

    @abstractmethod
    def supports_batch(self, with_source: bool) -> bool:
        """True when a single call can return the whole image batch."""

    @abstractmethod
    async def generate_image_batch(
        self,
        prompt: str,
        api_key: str,
        count: int,
        source: Optional[SourceImage] = None,
        model: Optional[str] = None,
    ) -> List[Optional[ImageItem]]:
        """One call returning up to `count` images. Empty slots come back as None."""

    @abstractmethod
    async def generate_single_image(
        self,
        prompt: str,
        api_key: str,
        source: Optional[SourceImage] = None,
        model: Optional[str] = None,
    ) -> Optional[ImageItem]:
        """One call returning at most one image."""

    @abstractmethod
    async def submit_video(
        self,
        prompt: str,
        api_key: str,
        count: int = 1,
        source: Optional[SourceImage] = None,
    ) -> Union[OperationHandle, OperationStatus]:
        """Start a video job. Returns a status instead when the job finished immediately."""

    @abstractmethod
    async def check_operation(self, handle: OperationHandle, api_key: str) -> OperationStatus:
        """Check a video job once."""
