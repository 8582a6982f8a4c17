"""FileLink core: security-gated requests for remotely stored files.

Security notes:
- Privileged operations are refused locally unless a policy/signature pair
  is configured.
- Response bodies are untrusted input.
"""

from .config import Config  # noqa: F401
from .decoding import FileContent  # noqa: F401
from .errors import (  # noqa: F401
    DecodeError,
    FileLinkError,
    SecurityRequiredError,
    TransportError,
)
from .filelink import FileLink  # noqa: F401
from .security.policy import (  # noqa: F401
    FULL_ACCESS_CALLS,
    PolicyOptions,
    SecurityPolicy,
    decode_policy,
    sign_policy,
)
from .transport import (  # noqa: F401
    RequestBody,
    RequestDescriptor,
    TransportGateway,
    TransportResponse,
)
