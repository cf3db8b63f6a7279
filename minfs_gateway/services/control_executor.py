"""Runs the per-role control scripts as child processes."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol

from ..errors import ControlActionTimeoutError, GatewayError
from ..models import ControlOutcome

logger = logging.getLogger(__name__)


class ScriptExecutor(Protocol):
    def run(self, script: Path, host: str, port: str) -> ControlOutcome:
        ...


def _decode(output: object) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return str(output)


@dataclass
class SubprocessScriptExecutor:
    interpreter: Optional[str] = "bash"
    timeout_seconds: Optional[float] = None

    def build_command(self, script: Path, host: str, port: str) -> List[str]:
        command = [str(script), host, port]
        if self.interpreter:
            command.insert(0, self.interpreter)
        return command

    def run(self, script: Path, host: str, port: str) -> ControlOutcome:
        command = self.build_command(script, host, port)
        logger.debug("Launching %s", command)
        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            # run() kills the child before re-raising.
            partial = _decode(exc.output).strip()
            raise ControlActionTimeoutError(self.timeout_seconds or 0.0, partial) from exc
        except OSError as exc:
            raise GatewayError(f"Failed to launch control script {script}: {exc}") from exc
        return ControlOutcome(exit_code=completed.returncode, output=completed.stdout or "")
