from __future__ import annotations

import logging
import os
import ssl
from http.client import HTTPException
from typing import Dict
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from filelink.core.errors import TransportError
from filelink.core.transport import (
    API_SERVICE,
    CDN_SERVICE,
    RequestDescriptor,
    TransportGateway,
    TransportResponse,
)

log = logging.getLogger("filelink.client")

DEFAULT_CDN_URL = "https://cdn.filestackcontent.com"
DEFAULT_API_URL = "https://www.filestackapi.com/api"
DEFAULT_TIMEOUT_SEC = 30.0


def _env_float(name: str, default: float) -> float:
    """Read a float environment variable, falling back on bad input."""

    raw = os.environ.get(name, "").strip()
    if not raw:
        return float(default)
    try:
        value = float(raw)
    except ValueError:
        return float(default)
    return value if value > 0 else float(default)


def _media_type(headers: Dict[str, str]) -> str:
    for k, v in headers.items():
        if k.lower() == "content-type":
            return v.split(";", 1)[0].strip() or "application/octet-stream"
    return "application/octet-stream"


class UrllibTransport(TransportGateway):
    """Stdlib-only transport for the CDN and REST API.

    Security notes:
    - Does NOT disable TLS verification.
    - Query strings carry the api key and signature; they are never logged.

    Time/Space: whole response bodies are buffered in memory.
    """

    def __init__(
        self,
        cdn_url: str = DEFAULT_CDN_URL,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SEC,
    ):
        self.base_urls = {
            CDN_SERVICE: cdn_url.rstrip("/"),
            API_SERVICE: api_url.rstrip("/"),
        }
        self.timeout = float(timeout)

    @classmethod
    def from_env(cls) -> "UrllibTransport":
        return cls(
            cdn_url=os.environ.get("FILELINK_CDN_URL", "").strip() or DEFAULT_CDN_URL,
            api_url=os.environ.get("FILELINK_API_URL", "").strip() or DEFAULT_API_URL,
            timeout=_env_float("FILELINK_TIMEOUT_SEC", DEFAULT_TIMEOUT_SEC),
        )

    def build_url(self, request: RequestDescriptor) -> str:
        try:
            base = self.base_urls[request.service]
        except KeyError:
            raise ValueError(f"unknown service: {request.service!r}") from None
        url = base + "/" + request.path.lstrip("/")
        if request.query:
            url += "?" + urlencode(list(request.query.items()))
        return url

    def send(self, request: RequestDescriptor) -> TransportResponse:
        req = Request(url=self.build_url(request), method=request.method)
        if request.body is not None:
            req.data = request.body.data
            req.add_header("Content-Type", request.body.media_type)
            req.add_header("Content-Length", str(len(request.body.data)))

        log.debug(
            "transport_request",
            extra={"service": request.service, "method": request.method},
        )
        return _do_request(req, self.timeout)


def _do_request(req: Request, timeout: float) -> TransportResponse:
    """Execute a request.

    Security notes:
    - Uses default SSL context (verification ON).
    """

    try:
        ctx = ssl.create_default_context()
        with urlopen(req, timeout=timeout, context=ctx) as resp:
            body = resp.read()
            headers = {k: v for k, v in resp.headers.items()}
            status = int(resp.status)
    except HTTPError as e:
        body = e.read() if hasattr(e, "read") else b""
        status = int(getattr(e, "code", 0) or 0)
        log.warning("transport_http_error", extra={"status_code": status, "method": req.get_method()})
        raise TransportError(status, body or b"") from e
    except (URLError, OSError, HTTPException) as e:
        reason = str(getattr(e, "reason", e)) or type(e).__name__
        log.warning("transport_unreachable", extra={"reason": reason, "method": req.get_method()})
        raise TransportError(0, b"", f"network error: {reason}") from e

    if not 200 <= status < 300:
        raise TransportError(status, body)
    return TransportResponse(
        status=status, media_type=_media_type(headers), body=body, headers=headers
    )
