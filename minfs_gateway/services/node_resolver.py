"""Turns a logical server reference into a concrete host/port.

Identifiers are polymorphic: absent (role default port), a literal port,
a role keyword such as ``master``, or an index into the current topology.
``parse_reference`` classifies the identifier; ``resolve_endpoint`` maps the
resulting reference to an :class:`Endpoint` and never returns a partially
populated one. Neither function launches processes, so both are unit
testable with a stubbed topology provider.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, List, Mapping, Optional

from ..errors import InputValidationError, UnresolvedEndpointError
from ..models import (
    DefaultPort,
    Endpoint,
    EndpointResolution,
    LiteralPort,
    ServerNode,
    ServerReference,
    ServerRole,
    TopologyReference,
    TopologySnapshot,
)

logger = logging.getLogger(__name__)

MASTER_KEYWORD = "master"
ADDRESSING_MODES = ("port", "topology")

_PORT_PATTERN = re.compile(r"[0-9]+")
_INDEX_PATTERN = re.compile(r"[+-]?[0-9]+")


def is_port(identifier: Optional[str]) -> bool:
    return identifier is not None and _PORT_PATTERN.fullmatch(identifier) is not None


def _as_index(identifier: str) -> Optional[int]:
    if _INDEX_PATTERN.fullmatch(identifier) is None:
        return None
    return int(identifier)


def parse_reference(role: ServerRole, identifier: Optional[str], addressing: str = "port") -> ServerReference:
    if addressing not in ADDRESSING_MODES:
        raise InputValidationError(f"Unsupported addressing mode: {addressing}")
    if identifier is not None:
        identifier = identifier.strip()
    if not identifier:
        return DefaultPort(role=role)
    if addressing == "port" and is_port(identifier):
        return LiteralPort(role=role, port=identifier)
    return TopologyReference(role=role, identifier=identifier)


def resolve_endpoint(
    reference: ServerReference,
    fetch_topology: Callable[[], TopologySnapshot],
    *,
    local_host: str,
    default_ports: Mapping[str, str],
) -> EndpointResolution:
    if isinstance(reference, DefaultPort):
        return EndpointResolution(Endpoint(local_host, default_ports[reference.role.value]), "default")
    if isinstance(reference, LiteralPort):
        return EndpointResolution(Endpoint(local_host, reference.port), "literal")

    role = reference.role
    identifier = reference.identifier
    try:
        topology = fetch_topology()
    except Exception as exc:
        port = identifier if is_port(identifier) else default_ports[role.value]
        logger.warning(
            "Cluster topology unavailable (%s); falling back to %s:%s for %s %s",
            exc,
            local_host,
            port,
            role.value,
            identifier,
        )
        return EndpointResolution(Endpoint(local_host, port), "fallback")

    if role == ServerRole.META and identifier == MASTER_KEYWORD:
        if topology.master_meta is None:
            raise UnresolvedEndpointError(role.value, identifier, "no master metadata server in topology")
        return EndpointResolution(topology.master_meta.endpoint(), "topology")

    index = _as_index(identifier)
    if index is None:
        return EndpointResolution(Endpoint(local_host, identifier), "literal")
    nodes = topology.slave_meta if role == ServerRole.META else topology.data_servers
    return EndpointResolution(_pick(nodes, index, role, identifier).endpoint(), "topology")


def _pick(nodes: List[ServerNode], index: int, role: ServerRole, identifier: str) -> ServerNode:
    if 0 <= index < len(nodes):
        return nodes[index]
    kind = "slave metadata" if role == ServerRole.META else "data"
    raise UnresolvedEndpointError(
        role.value,
        identifier,
        f"index out of range ({len(nodes)} {kind} servers in topology)",
    )
