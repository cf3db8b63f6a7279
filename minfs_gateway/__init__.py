"""Management gateway for a MinFS distributed file-system cluster."""

from .config import GatewayConfig  # noqa: F401
from .runtime import GatewayRuntime  # noqa: F401
