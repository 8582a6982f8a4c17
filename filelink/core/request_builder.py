"""Request construction for FileLink operations.

Every builder is pure apart from build_overwrite, which reads the local file.
Security is decided per operation: reads never require it, mutations and
transforms always do, and that check runs before anything else.
"""
from __future__ import annotations

import mimetypes
import os
from typing import Optional
from urllib.parse import quote

from .config import Config
from .errors import SecurityRequiredError
from .security.policy import SecurityPolicy
from .transport import (
    API_SERVICE,
    CDN_SERVICE,
    RequestBody,
    RequestDescriptor,
    query_dict,
)

TAGS_TASK = "tags"
SFW_TASK = "sfw"


def _handle_segment(handle: str) -> str:
    if not isinstance(handle, str):
        raise TypeError("handle must be a string")
    if not handle.strip():
        raise ValueError("handle must be non-empty")
    return quote(handle, safe="")


def _require_security(config: Config, operation: str) -> SecurityPolicy:
    security = config.security
    if security is None:
        raise SecurityRequiredError(operation)
    return security


def transform_task(security: SecurityPolicy, task: str) -> str:
    """Prefix a task with the security clause.

    The remote service parses the security clause positionally, so it must be
    the first segment.
    """

    if not task or not task.strip("/"):
        raise ValueError("task must be non-empty")
    return f"security=policy:{security.policy},signature:{security.signature}/{task}"


def build_get(handle: str, config: Config) -> RequestDescriptor:
    segment = _handle_segment(handle)
    security = config.security
    query = {}
    if security is not None:
        query = query_dict(policy=security.policy, signature=security.signature)
    return RequestDescriptor(service=CDN_SERVICE, method="GET", path=f"/{segment}", query=query)


def _read_local_file(local_path: str) -> bytes:
    if not local_path or not os.path.isfile(local_path):
        raise FileNotFoundError(f"no such file: {local_path!r}")
    try:
        with open(local_path, "rb") as f:
            return f.read()
    except OSError as e:
        raise FileNotFoundError(f"unable to read file: {local_path!r}") from e


def build_overwrite(handle: str, config: Config, local_path: str) -> RequestDescriptor:
    security = _require_security(config, "overwrite")
    segment = _handle_segment(handle)

    data = _read_local_file(local_path)
    media_type = mimetypes.guess_type(local_path)[0] or "application/octet-stream"

    return RequestDescriptor(
        service=API_SERVICE,
        method="POST",
        path=f"/file/{segment}",
        query=query_dict(
            key=config.api_key, policy=security.policy, signature=security.signature
        ),
        body=RequestBody(data=data, media_type=media_type),
    )


def build_delete(handle: str, config: Config) -> RequestDescriptor:
    security = _require_security(config, "delete")
    segment = _handle_segment(handle)
    return RequestDescriptor(
        service=API_SERVICE,
        method="DELETE",
        path=f"/file/{segment}",
        query=query_dict(
            key=config.api_key, policy=security.policy, signature=security.signature
        ),
    )


def build_transform(
    handle: str, config: Config, task: str, *, operation: Optional[str] = None
) -> RequestDescriptor:
    security = _require_security(config, operation or f"transform:{task}")
    segment = _handle_segment(handle)
    tasks = transform_task(security, task)
    return RequestDescriptor(service=CDN_SERVICE, method="GET", path=f"/{tasks}/{segment}")
