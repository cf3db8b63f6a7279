"""Exception hierarchy surfaced by gateway services.

Every error carries the envelope ``code`` the HTTP layer reports for it.
"""

from __future__ import annotations

from typing import Optional


class GatewayError(Exception):
    code = 500

    def __init__(self, message: str, *, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class InputValidationError(GatewayError):
    code = 400


class FileOperationError(GatewayError):
    pass


class PathNotFoundError(FileOperationError):
    code = 404


class TransferFailedError(GatewayError):
    pass


class UnsupportedControlError(GatewayError):
    code = 400


class UnresolvedEndpointError(GatewayError):
    def __init__(self, role: str, identifier: Optional[str], reason: str) -> None:
        super().__init__(f"Unable to resolve server address for {role} {identifier}: {reason}")
        self.role = role
        self.identifier = identifier


class ControlActionFailedError(GatewayError):
    def __init__(self, exit_code: int, output: str) -> None:
        super().__init__(f"Control script failed (exit code: {exit_code}): {output}")
        self.exit_code = exit_code
        self.output = output


class ControlActionTimeoutError(GatewayError):
    code = 504

    def __init__(self, timeout_seconds: float, output: str) -> None:
        super().__init__(f"Control script timed out after {timeout_seconds:g}s: {output}")
        self.timeout_seconds = timeout_seconds
        self.output = output
