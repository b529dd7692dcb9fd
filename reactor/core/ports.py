"""Port mapping parsing, merging and conflict detection."""

from typing import Dict, Iterable, List, Mapping

from pydantic import ValidationError

from ..models.config import PortMapping
from ..services.exceptions import ConfigurationError, PortConflictError


def _parse_port(value: str, spec: str) -> int:
    try:
        port = int(value.strip())
    except ValueError:
        raise ConfigurationError(
            f"invalid port mapping '{spec}': '{value}' is not a number"
        ) from None
    if port < 1 or port > 65535:
        raise ConfigurationError(
            f"invalid port mapping '{spec}': port {port} out of range (1-65535)"
        )
    return port


def parse_port_mapping(spec: str) -> PortMapping:
    """Parse a ``host:container`` string into a PortMapping.

    Raises:
        ConfigurationError: If the string is malformed or a port is out of range
    """
    parts = spec.split(':')
    if len(parts) != 2:
        raise ConfigurationError(
            f"invalid port mapping '{spec}': expected format host_port:container_port"
        )
    return PortMapping(
        host_port=_parse_port(parts[0], spec),
        container_port=_parse_port(parts[1], spec),
    )


def parse_port_mappings(specs: Iterable[str]) -> List[PortMapping]:
    return [parse_port_mapping(spec) for spec in specs]


def port_mapping_from_int(port: int) -> PortMapping:
    """Forward a container port to the same host port."""
    try:
        return PortMapping(host_port=port, container_port=port)
    except ValidationError as e:
        raise ConfigurationError(f"invalid port {port}: out of range (1-65535)") from e


def merge_port_mappings(
    declared: List[PortMapping], override: List[PortMapping]
) -> List[PortMapping]:
    """Apply overrides to declared mappings.

    An override whose host port matches a declared entry replaces it in
    place; any other override is appended in override order. Exact
    duplicates are kept once.
    """
    merged: List[PortMapping] = []
    index_by_host: Dict[int, int] = {}
    for mapping in declared:
        if mapping in merged:
            continue
        index_by_host.setdefault(mapping.host_port, len(merged))
        merged.append(mapping)

    for mapping in override:
        if mapping.host_port in index_by_host:
            merged[index_by_host[mapping.host_port]] = mapping
        else:
            index_by_host[mapping.host_port] = len(merged)
            merged.append(mapping)

    return merged


def validate_no_conflicts(merged: List[PortMapping]) -> None:
    """Reject a single-service list that binds one host port to two container ports.

    Repeating an identical mapping is not a conflict. A list produced by
    :func:`merge_port_mappings` from a clean declared list always passes.
    """
    seen: Dict[int, int] = {}
    for mapping in merged:
        previous = seen.get(mapping.host_port)
        if previous is not None and previous != mapping.container_port:
            raise ConfigurationError(
                f"host port {mapping.host_port} is mapped more than once "
                f"(container ports {previous} and {mapping.container_port})"
            )
        seen.setdefault(mapping.host_port, mapping.container_port)


def detect_cross_service_conflicts(
    per_service: Mapping[str, List[PortMapping]]
) -> Dict[int, List[str]]:
    """Map each host port claimed by more than one service to those services.

    Every service is examined before returning.
    """
    claims: Dict[int, List[str]] = {}
    for service, mappings in per_service.items():
        for mapping in mappings:
            owners = claims.setdefault(mapping.host_port, [])
            if service not in owners:
                owners.append(service)

    return {port: owners for port, owners in claims.items() if len(owners) > 1}


def ensure_no_cross_service_conflicts(per_service: Mapping[str, List[PortMapping]]) -> None:
    """Raise PortConflictError if any host port is claimed by two services."""
    conflicts = detect_cross_service_conflicts(per_service)
    if conflicts:
        raise PortConflictError(conflicts)
