"""HTTP transport for talking to the file service.

Security notes:
- Treat server responses as untrusted input.
- Avoid printing or logging raw file bytes or policy signatures.
"""

from .http import UrllibTransport  # noqa: F401
