from __future__ import annotations

import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, StrictBool, StrictInt, ValidationError

from .errors import DecodeError, TransportError
from .transport import TransportResponse

_DISPOSITION_FILENAME = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)

# Process umask, read once; temp files are created 0600 and widened to match.
_UMASK = os.umask(0o022)
os.umask(_UMASK)


@dataclass(frozen=True, slots=True)
class FileContent:
    """Raw file bytes exactly as served.

    Security notes:
    - Treat `data` as untrusted.
    """

    data: bytes
    media_type: str

    def text(self, encoding: str = "utf-8") -> str:
        return self.data.decode(encoding)


class _TagGroups(BaseModel):
    model_config = ConfigDict(extra="ignore")

    auto: Optional[Dict[str, StrictInt]] = None
    user: Any = None


class _TagsBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tags: _TagGroups


class _SfwBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sfw: StrictBool


def _decode_error(e: ValidationError, what: str) -> DecodeError:
    errors = e.errors()
    if not errors:
        return DecodeError(f"invalid {what} response")
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    if first.get("type") == "json_invalid":
        return DecodeError(f"{what} response is not valid JSON: {first.get('msg')}")
    return DecodeError(f"invalid {what} response at {loc or '<root>'}: {first.get('msg')}", field=loc or None)


def ensure_success(response: TransportResponse) -> None:
    """Raise TransportError unless the response carries a 2xx status."""

    if not response.ok:
        raise TransportError(response.status, response.body)


def decode_content(response: TransportResponse) -> FileContent:
    ensure_success(response)
    return FileContent(data=response.body, media_type=response.media_type)


def decode_image_tags(body: bytes) -> Dict[str, int]:
    """Decode a tags transform response into the `auto` tag scores.

    `user` tags are not surfaced. A missing or null `auto` group yields {}.
    """

    try:
        parsed = _TagsBody.model_validate_json(body)
    except ValidationError as e:
        raise _decode_error(e, "tags") from e
    return dict(parsed.tags.auto or {})


def decode_image_sfw(body: bytes) -> bool:
    try:
        parsed = _SfwBody.model_validate_json(body)
    except ValidationError as e:
        raise _decode_error(e, "sfw") from e
    return parsed.sfw


def _download_filename(response: TransportResponse, handle: str, filename: Optional[str]) -> str:
    candidate = filename or response.header("X-File-Name")
    if not candidate:
        disp = response.header("Content-Disposition")
        if disp:
            m = _DISPOSITION_FILENAME.search(disp)
            if m:
                candidate = m.group(1).strip()
    if not candidate:
        candidate = handle

    # Only a base name; never escape the target directory.
    name = os.path.basename(candidate.replace("\\", "/"))
    if name in {"", ".", ".."}:
        raise ValueError(f"unusable download filename: {candidate!r}")
    return name


def save_download(
    response: TransportResponse,
    handle: str,
    target_dir: str,
    filename: Optional[str] = None,
) -> Path:
    """Write a response body into target_dir and return the file path.

    The body is written to a temporary file in the same directory and moved
    into place, so a failed write never leaves a complete-looking file.
    """

    ensure_success(response)

    directory = Path(target_dir)
    if not directory.is_dir():
        raise FileNotFoundError(f"download directory does not exist: {target_dir!r}")

    dest = directory / _download_filename(response, handle, filename)

    fd, tmp_name = tempfile.mkstemp(prefix=".filelink-", suffix=".part", dir=str(directory))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(response.body)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o666 & ~_UMASK)
        os.replace(tmp_name, dest)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return dest
