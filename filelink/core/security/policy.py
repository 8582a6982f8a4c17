from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from cryptography.hazmat.primitives import hashes, hmac

# Every call a policy may grant.
FULL_ACCESS_CALLS: Tuple[str, ...] = (
    "pick",
    "read",
    "stat",
    "write",
    "writeUrl",
    "store",
    "convert",
    "remove",
    "exif",
)


@dataclass(frozen=True, slots=True)
class SecurityPolicy:
    """
    A signed authorization pair required for privileged operations.

    Security invariants
    - Immutable once constructed
    - Both parts are non-empty strings (never one without the other)
    """

    policy: str
    signature: str

    def __post_init__(self) -> None:
        for name in ("policy", "signature"):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise TypeError(f"{name} must be a string")
            if not value.strip():
                raise ValueError(f"{name} must be non-empty")

    def __repr__(self) -> str:
        # Keep the signature out of logs and tracebacks.
        return f"SecurityPolicy(policy={self.policy!r}, signature='***')"


@dataclass(frozen=True, slots=True)
class PolicyOptions:
    """Claims encoded into a policy before signing.

    `expiry` is a unix timestamp in seconds. Optional claims left as None are
    omitted from the encoded policy.
    """

    expiry: int
    calls: Tuple[str, ...] = field(default_factory=tuple)
    handle: Optional[str] = None
    url: Optional[str] = None
    max_size: Optional[int] = None
    min_size: Optional[int] = None
    path: Optional[str] = None
    container: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.expiry, bool) or not isinstance(self.expiry, int):
            raise TypeError("expiry must be an integer unix timestamp")
        if self.expiry <= 0:
            raise ValueError("expiry must be positive")

        calls = tuple(self.calls)
        for c in calls:
            if c not in FULL_ACCESS_CALLS:
                raise ValueError(f"unknown policy call: {c!r}")
        object.__setattr__(self, "calls", calls)

        if self.max_size is not None and self.min_size is not None and self.min_size > self.max_size:
            raise ValueError("min_size must not exceed max_size")

    @classmethod
    def full_access(cls, expiry: int, **claims: Any) -> "PolicyOptions":
        return cls(expiry=expiry, calls=FULL_ACCESS_CALLS, **claims)

    def to_claims(self) -> Dict[str, Any]:
        """Return the claims keyed by the service's field names."""

        claims: Dict[str, Any] = {"expiry": self.expiry}
        if self.calls:
            claims["call"] = list(self.calls)
        optional = {
            "handle": self.handle,
            "url": self.url,
            "maxSize": self.max_size,
            "minSize": self.min_size,
            "path": self.path,
            "container": self.container,
        }
        claims.update({k: v for k, v in optional.items() if v is not None})
        return claims


def encode_policy(options: PolicyOptions) -> str:
    """Encode policy claims as base64url compact JSON."""

    raw = json.dumps(options.to_claims(), sort_keys=True, separators=(",", ":"))
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_policy(policy: str) -> Dict[str, Any]:
    """Decode an encoded policy back into its claims.

    Does NOT verify the signature.
    """

    try:
        raw = base64.urlsafe_b64decode(policy.encode("ascii"))
        claims = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise ValueError("policy is not a base64url encoded JSON object") from e
    if not isinstance(claims, dict):
        raise ValueError("policy is not a base64url encoded JSON object")
    return claims


def compute_signature(encoded_policy: str, app_secret: str) -> str:
    """Lowercase hex HMAC-SHA256 of the encoded policy."""

    if not app_secret:
        raise ValueError("app_secret must be non-empty")
    mac = hmac.HMAC(app_secret.encode("utf-8"), hashes.SHA256())
    mac.update(encoded_policy.encode("ascii"))
    return mac.finalize().hex()


def sign_policy(options: PolicyOptions, app_secret: str) -> SecurityPolicy:
    """Encode and sign policy claims with the application secret.

    Security notes:
    - The app secret must stay server-side; ship only the resulting pair.
    """

    encoded = encode_policy(options)
    return SecurityPolicy(policy=encoded, signature=compute_signature(encoded, app_secret))
