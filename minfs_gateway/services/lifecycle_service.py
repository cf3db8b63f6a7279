"""Start/stop/restart/status dispatch for metadata and data server processes."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from ..errors import ControlActionFailedError, UnsupportedControlError
from ..models import ControlAction, ControlOutcome, ControlResult, EndpointResolution, ServerRole
from ..storage.base import FileSystemClient
from .base import BaseService
from .control_executor import ScriptExecutor
from .node_resolver import parse_reference, resolve_endpoint

logger = logging.getLogger(__name__)

SUCCESS_SENTINEL = "operation completed successfully"


@dataclass
class LifecycleDispatcher(BaseService):
    filesystem: FileSystemClient
    executor: ScriptExecutor
    # Held for the whole resolve -> execute -> interpret sequence. Lifecycle
    # requests on one gateway never overlap; transfers do not take it.
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def execute(
        self,
        role: str,
        action: str,
        identifier: Optional[str] = None,
        *,
        addressing: str = "port",
    ) -> ControlResult:
        server_role, control_action, script = self.select_script(role, action)
        with self._lock:
            reference = parse_reference(server_role, identifier, addressing)
            resolution = resolve_endpoint(
                reference,
                self.filesystem.cluster_topology,
                local_host=self.config.control.local_host,
                default_ports=self.config.control.default_ports,
            )
            if resolution.is_fallback:
                self.emit_event(
                    "control_endpoint_fallback",
                    role=server_role.value,
                    identifier=identifier or "",
                    endpoint=str(resolution.endpoint),
                )
            logger.info(
                "Running %s %s against %s (%s)",
                server_role.value,
                control_action.value,
                resolution.endpoint,
                resolution.source,
            )
            outcome = self.executor.run(script, resolution.endpoint.host, resolution.endpoint.port)
            self.emit_metric(
                "control.exit_code",
                outcome.exit_code,
                role=server_role.value,
                action=control_action.value,
            )
            return self._interpret(server_role, control_action, resolution, outcome)

    def select_script(self, role: str, action: str) -> Tuple[ServerRole, ControlAction, Path]:
        role_key = (role or "").strip().lower()
        action_key = (action or "").strip().lower()
        try:
            server_role = ServerRole(role_key)
        except ValueError as exc:
            raise UnsupportedControlError(f"Unsupported server type: {role}") from exc
        try:
            control_action = ControlAction(action_key)
        except ValueError as exc:
            raise UnsupportedControlError(f"Unsupported {server_role.value} server action: {action}") from exc
        scripts = self.config.control.scripts.get(server_role.value, {})
        script_name = scripts.get(control_action.value)
        if not script_name:
            raise UnsupportedControlError(f"No control script configured for {server_role.value} {control_action.value}")
        return server_role, control_action, Path(self.config.control.script_dir) / script_name

    def _interpret(
        self,
        role: ServerRole,
        action: ControlAction,
        resolution: EndpointResolution,
        outcome: ControlOutcome,
    ) -> ControlResult:
        output = outcome.output.strip()
        if outcome.exit_code != 0:
            logger.error(
                "%s %s on %s exited with %s: %s",
                role.value,
                action.value,
                resolution.endpoint,
                outcome.exit_code,
                output,
            )
            raise ControlActionFailedError(outcome.exit_code, output)
        return ControlResult(
            role=role,
            action=action,
            endpoint=resolution.endpoint,
            source=resolution.source,
            output=output or SUCCESS_SENTINEL,
        )
