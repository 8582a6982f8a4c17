from __future__ import annotations

from typing import Optional


class FileLinkError(Exception):
    """
    Base exception for all FileLink failures.
    """

    pass


class SecurityRequiredError(FileLinkError):
    """
    Raised locally when a privileged operation is attempted without a
    policy/signature pair. Nothing has been sent over the wire.
    """

    def __init__(self, operation: str):
        super().__init__(f"{operation} requires a security policy and signature")
        self.operation = operation


class TransportError(FileLinkError):
    """
    Raised when the remote service answers with a non-success status or
    cannot be reached (status 0).
    """

    def __init__(self, status: int, body: bytes = b"", reason: Optional[str] = None):
        detail = reason or body[:200].decode("utf-8", errors="replace")
        super().__init__(f"transport error {status}: {detail}" if detail else f"transport error {status}")
        self.status = int(status)
        self.body = body


class DecodeError(FileLinkError, ValueError):
    """
    Raised when a response body does not have the shape expected for the
    operation that requested it.
    """

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field
