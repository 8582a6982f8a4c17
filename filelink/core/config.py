from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .security.policy import SecurityPolicy


def _env_str(name: str) -> Optional[str]:
    raw = os.environ.get(name, "").strip()
    return raw or None


@dataclass(frozen=True, slots=True)
class Config:
    """
    Client configuration shared read-only by every FileLink built from it.

    Security invariants
    - api_key is required and non-empty
    - policy and signature are both present or both absent
    - Immutable after construction
    """

    api_key: str
    policy: Optional[str] = None
    signature: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.api_key, str):
            raise TypeError("api_key must be a string")
        if not self.api_key.strip():
            raise ValueError("api_key must be non-empty")

        # Treat blank values as absent so the pair check stays meaningful.
        policy = self.policy or None
        signature = self.signature or None
        if (policy is None) != (signature is None):
            raise ValueError("policy and signature must be provided together")
        object.__setattr__(self, "policy", policy)
        object.__setattr__(self, "signature", signature)

        if policy is not None:
            # Validates both values.
            SecurityPolicy(policy=policy, signature=signature)

    @classmethod
    def with_security(cls, api_key: str, security: SecurityPolicy) -> "Config":
        return cls(api_key=api_key, policy=security.policy, signature=security.signature)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a Config from FILELINK_* environment variables.

        Security notes:
        - Env vars are treated as trusted local configuration.
        """

        api_key = _env_str("FILELINK_API_KEY")
        if api_key is None:
            raise ValueError("FILELINK_API_KEY is not set")
        return cls(
            api_key=api_key,
            policy=_env_str("FILELINK_POLICY"),
            signature=_env_str("FILELINK_SIGNATURE"),
        )

    @property
    def security(self) -> Optional[SecurityPolicy]:
        if self.policy is None or self.signature is None:
            return None
        return SecurityPolicy(policy=self.policy, signature=self.signature)

    def is_secure(self) -> bool:
        return self.policy is not None and self.signature is not None

    def __repr__(self) -> str:
        return f"Config(api_key='***', secure={self.is_secure()})"
