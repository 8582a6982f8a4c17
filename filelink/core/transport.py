from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

CDN_SERVICE = "cdn"
API_SERVICE = "api"


@dataclass(frozen=True, slots=True)
class RequestBody:
    """Raw request payload."""

    data: bytes
    media_type: str = "application/octet-stream"

    def __repr__(self) -> str:
        return f"RequestBody(media_type={self.media_type!r}, size={len(self.data)})"


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    """A fully formed request, built fresh per call.

    `path` is relative to the base URL of `service`. Query keys are unique and
    keep insertion order.
    """

    service: str
    method: str
    path: str
    query: Mapping[str, str] = field(default_factory=dict)
    body: Optional[RequestBody] = None


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Raw response as returned by a gateway.

    Security notes:
    - Treat `body` as untrusted.
    """

    status: int
    media_type: str
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""

        wanted = name.lower()
        for k, v in self.headers.items():
            if k.lower() == wanted:
                return v
        return None


class TransportGateway(ABC):
    """Boundary over the network client.

    Implementations block until a complete response is available and raise
    TransportError for non-success statuses and connectivity failures.
    """

    @abstractmethod
    def send(self, request: RequestDescriptor) -> TransportResponse:
        raise NotImplementedError


def query_dict(**params: Optional[str]) -> Dict[str, str]:
    """Build query parameters, dropping absent values."""

    return {k: v for k, v in params.items() if v is not None}
