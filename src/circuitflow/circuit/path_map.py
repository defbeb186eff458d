"""Tag translation map of one circuit path.

For every link end, the map records which internal tag traffic carries when it
arrives on that (node, port) and which tag it must carry when sent back out of
that port toward the peer node:

    (node, port_no, local_tag) -> remote_tag

where local_tag is the internal VLAN id assigned to (node, interface) and
remote_tag the one assigned to the interface on the other end of the link.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..errors import CircuitError, VlanMappingError
from .schema import CircuitDetails, Link, PathName

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathMapEntry:
    """One direction of one link end."""
    node: str
    port_no: int
    interface_id: int
    local_tag: int
    remote_tag: int


@dataclass
class PathMap:
    """Per-node, per-port tag translations of one path."""
    path: PathName
    _translations: dict[str, dict[int, dict[int, int]]] = field(default_factory=dict)
    _entries: list[PathMapEntry] = field(default_factory=list)

    def add(self, entry: PathMapEntry) -> None:
        """Record a translation; a conflicting remote tag is an error."""
        tags = self._translations.setdefault(entry.node, {}).setdefault(entry.port_no, {})
        existing = tags.get(entry.local_tag)
        if existing is not None and existing != entry.remote_tag:
            raise CircuitError(
                f"Conflicting translations on {self.path.value} path at "
                f"{entry.node} port {entry.port_no} tag {entry.local_tag}: "
                f"{existing} and {entry.remote_tag}"
            )
        tags[entry.local_tag] = entry.remote_tag
        self._entries.append(entry)

    @property
    def entries(self) -> tuple[PathMapEntry, ...]:
        return tuple(self._entries)

    def nodes(self) -> list[str]:
        return sorted(self._translations)

    def ports(self, node: str) -> list[int]:
        return sorted(self._translations.get(node, {}))

    def translations(self, node: str, port_no: int) -> dict[int, int]:
        """local_tag -> remote_tag for traffic on (node, port_no)."""
        return dict(sorted(self._translations.get(node, {}).get(port_no, {}).items()))

    def remote_tag(self, node: str, port_no: int, local_tag: int) -> Optional[int]:
        """Tag to set when sending traffic with local_tag out of (node, port_no).

        A port terminates exactly one link, so when local_tag was assigned to a
        different interface of the node, the port's single translation applies.
        """
        tags = self._translations.get(node, {}).get(port_no, {})
        if local_tag in tags:
            return tags[local_tag]
        if len(tags) == 1:
            return next(iter(tags.values()))
        return None

    def __contains__(self, node: str) -> bool:
        return node in self._translations


def build_path_map(
    path: PathName,
    links: Iterable[Link],
    internal_ids: dict[PathName, dict[str, dict[int, int]]],
) -> PathMap:
    """
    Build the tag translation map for one path.

    Args:
        path: Which path the links belong to
        links: Links of the path
        internal_ids: path -> node -> interface_id -> internal tag

    Returns:
        PathMap with two entries per link

    Raises:
        VlanMappingError: If a link end has no internal VLAN id
    """
    path_ids = internal_ids.get(path, {})
    path_map = PathMap(path=path)

    def lookup(node: str, interface_id: int) -> int:
        tag = path_ids.get(node, {}).get(interface_id)
        if tag is None:
            raise VlanMappingError(path.value, node, interface_id)
        return tag

    for link in links:
        tag_a = lookup(link.node_a, link.interface_a_id)
        tag_z = lookup(link.node_z, link.interface_z_id)

        path_map.add(PathMapEntry(
            node=link.node_a,
            port_no=link.port_no_a,
            interface_id=link.interface_a_id,
            local_tag=tag_a,
            remote_tag=tag_z,
        ))
        path_map.add(PathMapEntry(
            node=link.node_z,
            port_no=link.port_no_z,
            interface_id=link.interface_z_id,
            local_tag=tag_z,
            remote_tag=tag_a,
        ))

    logger.debug(
        f"Built {path.value} path map: {len(path_map.entries)} entries "
        f"over {len(path_map.nodes())} nodes"
    )
    return path_map


def path_map_for(details: CircuitDetails, path: PathName) -> PathMap:
    """Path map of a circuit's primary or backup path."""
    return build_path_map(path, details.path_links(path), details.internal_ids)
