from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Optional, TypeVar

from .config import Config
from .decoding import (
    FileContent,
    decode_content,
    decode_image_sfw,
    decode_image_tags,
    ensure_success,
    save_download,
)
from .errors import FileLinkError, SecurityRequiredError
from .request_builder import (
    SFW_TASK,
    TAGS_TASK,
    build_delete,
    build_get,
    build_overwrite,
    build_transform,
)
from .transport import RequestDescriptor, TransportGateway, TransportResponse

log = logging.getLogger("filelink.core")

T = TypeVar("T")


class FileLink:
    """
    Handle to a single remotely stored file.

    Every operation is one shot: build request -> send -> decode. There is no
    retry, caching or session state here; retries belong to the transport.

    Security invariants
    - overwrite, delete and transforms fail with SecurityRequiredError before
      the transport is touched when the config has no policy/signature pair
    - Immutable: (config, handle, transport) are fixed at construction, so
      concurrent calls on one instance are independent
    """

    __slots__ = ("_config", "_handle", "_transport")

    def __init__(self, config: Config, handle: str, *, transport: TransportGateway):
        if not isinstance(config, Config):
            raise TypeError("config must be a Config instance")
        if not isinstance(handle, str):
            raise TypeError("handle must be a string")
        if not handle.strip():
            raise ValueError("handle must be non-empty")
        if not isinstance(transport, TransportGateway):
            raise TypeError("transport must be a TransportGateway instance")

        self._config = config
        self._handle = handle
        self._transport = transport

    @property
    def config(self) -> Config:
        return self._config

    @property
    def handle(self) -> str:
        return self._handle

    @property
    def transport(self) -> TransportGateway:
        return self._transport

    def __repr__(self) -> str:
        return f"FileLink(handle={self._handle!r})"

    def _run(
        self,
        operation: str,
        build: Callable[[], RequestDescriptor],
        decode: Callable[[TransportResponse], T],
    ) -> T:
        try:
            request = build()
        except SecurityRequiredError:
            log.warning(
                "filelink_security_required",
                extra={"handle": self._handle, "operation": operation},
            )
            raise
        except OSError as e:
            log.info(
                "filelink_operation_failed",
                extra={"handle": self._handle, "operation": operation, "error": type(e).__name__},
            )
            raise

        try:
            response = self._transport.send(request)
            result = decode(response)
        except (FileLinkError, OSError) as e:
            log.info(
                "filelink_operation_failed",
                extra={
                    "handle": self._handle,
                    "operation": operation,
                    "error": type(e).__name__,
                    "status": getattr(e, "status", None),
                },
            )
            raise

        log.info(
            "filelink_operation",
            extra={"handle": self._handle, "operation": operation, "status": response.status},
        )
        return result

    def get_content(self) -> FileContent:
        """Fetch the file bytes and media type, unmodified."""

        return self._run("get", lambda: build_get(self._handle, self._config), decode_content)

    def download(self, target_dir: str, filename: Optional[str] = None) -> Path:
        """Save the file into target_dir.

        Without `filename`, the name comes from the response headers, falling
        back to the handle.
        """

        return self._run(
            "download",
            lambda: build_get(self._handle, self._config),
            lambda r: save_download(r, self._handle, target_dir, filename),
        )

    def overwrite(self, local_path: str) -> None:
        """Replace the remote file content with a local file. Requires security."""

        self._run(
            "overwrite",
            lambda: build_overwrite(self._handle, self._config, local_path),
            ensure_success,
        )

    def delete(self) -> None:
        """Delete the remote file. Requires security."""

        self._run("delete", lambda: build_delete(self._handle, self._config), ensure_success)

    def image_tags(self) -> Dict[str, int]:
        """Return automatically detected tags and their confidence scores.

        Only the `auto` group is returned; user tags are not surfaced.
        """

        return self._run(
            "image_tags",
            lambda: build_transform(self._handle, self._config, TAGS_TASK, operation="image_tags"),
            lambda r: decode_image_tags(_successful_body(r)),
        )

    def image_sfw(self) -> bool:
        """Return True if the remote service classifies the image as safe for work."""

        return self._run(
            "image_sfw",
            lambda: build_transform(self._handle, self._config, SFW_TASK, operation="image_sfw"),
            lambda r: decode_image_sfw(_successful_body(r)),
        )


def _successful_body(response: TransportResponse) -> bytes:
    ensure_success(response)
    return response.body
