"""Schema definitions for circuits.

Defines the circuit details format loaded from persistence and the small
enumerations shared by the compiler and the path controller.
"""
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Optional

from ..errors import InvalidPathError

# Tag value of an endpoint that carries untagged traffic
UNTAGGED = -1


class PathName(str, Enum):
    """One of the two routed paths of a circuit."""
    PRIMARY = "primary"
    BACKUP = "backup"

    @classmethod
    def parse(cls, value: "str | PathName") -> "PathName":
        """Convert a path selector to PathName, raising InvalidPathError."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidPathError(value)

    @property
    def alternate(self) -> "PathName":
        return PathName.BACKUP if self is PathName.PRIMARY else PathName.PRIMARY


class FlowCategory(str, Enum):
    """Kind of synthesized flow."""
    PATH = "path"
    ENDPOINT = "endpoint"
    STATIC_MAC = "static_mac_addr"


class LinkStatus(IntEnum):
    """Operational status of a physical link."""
    DOWN = 0
    UP = 1
    UNKNOWN = 2

    @classmethod
    def parse(cls, value: "str | int | LinkStatus") -> "LinkStatus":
        """Accept the stored status strings as well as the numeric codes."""
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Invalid link status: {value}")
        return cls(value)


class PathState(str, Enum):
    """State of a persisted path instantiation."""
    ACTIVE = "active"
    AVAILABLE = "available"
    DECOM = "decom"


@dataclass(frozen=True)
class Link:
    """Undirected physical link between two (node, interface) pairs."""
    name: str
    node_a: str
    node_z: str
    interface_a_id: int
    interface_z_id: int
    port_no_a: int
    port_no_z: int
    link_id: Optional[int] = None
    interface_a: str = ""
    interface_z: str = ""

    def side(self, node: str) -> Optional[tuple[int, int]]:
        """Return (port_no, interface_id) of this link on node, or None."""
        if self.node_a == node:
            return self.port_no_a, self.interface_a_id
        if self.node_z == node:
            return self.port_no_z, self.interface_z_id
        return None

    def peer(self, node: str) -> Optional[tuple[str, int]]:
        """Return (node, interface_id) of the opposite end of the link."""
        if self.node_a == node:
            return self.node_z, self.interface_z_id
        if self.node_z == node:
            return self.node_a, self.interface_a_id
        return None


@dataclass(frozen=True)
class Endpoint:
    """Customer-facing attachment point of a circuit."""
    node: str
    port_no: int
    tag: int = UNTAGGED
    interface: str = ""
    interface_id: Optional[int] = None
    mac_addrs: tuple[str, ...] = ()
    bandwidth: Optional[int] = None
    local: bool = True

    @property
    def untagged(self) -> bool:
        return self.tag == UNTAGGED


@dataclass(frozen=True)
class CircuitDetails:
    """Complete persisted description of a circuit.

    internal_ids maps path -> node -> interface_id -> internal VLAN tag.
    """
    circuit_id: int
    name: str
    active_path: PathName = PathName.PRIMARY
    static_mac: bool = False
    restore_to_primary: int = 0
    endpoints: tuple[Endpoint, ...] = ()
    links: tuple[Link, ...] = ()
    backup_links: tuple[Link, ...] = ()
    internal_ids: dict[PathName, dict[str, dict[int, int]]] = field(default_factory=dict)
    description: str = ""
    created_by: str = ""
    created_on: str = ""
    last_modified_by: str = ""
    last_edited: str = ""
    workgroup: str = ""

    @property
    def has_backup_path(self) -> bool:
        return len(self.backup_links) > 0

    @property
    def interdomain(self) -> bool:
        return any(not endpoint.local for endpoint in self.endpoints)

    def path_links(self, path: PathName) -> tuple[Link, ...]:
        """Links of the requested path."""
        if path is PathName.BACKUP:
            return self.backup_links
        return self.links

    def internal_tag(self, path: PathName, node: str, interface_id: int) -> Optional[int]:
        """Internal VLAN tag of (node, interface) on path, or None if unassigned."""
        return self.internal_ids.get(path, {}).get(node, {}).get(interface_id)


@dataclass(frozen=True)
class PathInstantiation:
    """A persisted, time-bounded record of one path's state."""
    path_instantiation_id: int
    path_id: int
    circuit_id: int
    path_type: PathName
    path_state: PathState
    start_epoch: int = 0
    end_epoch: int = -1

    @property
    def is_current(self) -> bool:
        return self.end_epoch == -1


# --- Results ---

@dataclass
class PathSwitchResult:
    """Result of a path switch-over attempt."""
    success: bool = False
    circuit_id: Optional[int] = None
    previous_path: Optional[PathName] = None
    active_path: Optional[PathName] = None
    committed: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "circuit_id": self.circuit_id,
            "previous_path": self.previous_path.value if self.previous_path else None,
            "active_path": self.active_path.value if self.active_path else None,
            "committed": self.committed,
            "error": self.error,
        }
