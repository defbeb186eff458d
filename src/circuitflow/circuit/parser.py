"""Parser for persisted circuit details.

Converts the dict returned by the persistence layer (or loaded from YAML)
to strongly-typed CircuitDetails objects.
"""
import re
from typing import Any, Optional

from ..errors import ParseError
from .schema import (
    UNTAGGED,
    CircuitDetails,
    Endpoint,
    Link,
    PathName,
)

MAC_PATTERN = re.compile(r"^[0-9a-f]{12}$")


def normalize_mac(mac: str) -> str:
    """Normalize a MAC address to lower-case colon form.

    Examples:
        "00:1B:21:3A:4C:5D" -> "00:1b:21:3a:4c:5d"
        "001b.213a.4c5d"    -> "00:1b:21:3a:4c:5d"
        "00-1b-21-3a-4c-5d" -> "00:1b:21:3a:4c:5d"
    """
    digits = re.sub(r"[:.\-]", "", str(mac)).lower()
    if not MAC_PATTERN.match(digits):
        raise ParseError(f"Invalid MAC address: {mac}")
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


class CircuitParser:
    """Parse circuit details from dict/YAML format."""

    def parse(self, details: dict[str, Any]) -> CircuitDetails:
        """
        Parse a circuit details dict into a CircuitDetails object.

        Args:
            details: Dict with circuit_id, endpoints, links, internal_ids, etc.

        Returns:
            CircuitDetails object

        Raises:
            ParseError: If details are invalid
        """
        circuit_id = details.get("circuit_id")
        if circuit_id is None:
            raise ParseError("Missing required field: circuit_id")
        try:
            circuit_id = int(circuit_id)
        except (ValueError, TypeError):
            raise ParseError(f"Invalid circuit_id: {circuit_id}")

        active_path = details.get("active_path", "primary")
        try:
            active_path = PathName(active_path)
        except ValueError:
            raise ParseError(
                f"Invalid active_path: {active_path}. Must be 'primary' or 'backup'"
            )

        endpoints = tuple(
            self._parse_endpoint(ep) for ep in details.get("endpoints") or []
        )
        links = tuple(self._parse_link(l) for l in details.get("links") or [])
        backup_links = tuple(
            self._parse_link(l) for l in details.get("backup_links") or []
        )

        return CircuitDetails(
            circuit_id=circuit_id,
            name=str(details.get("name") or details.get("description") or circuit_id),
            active_path=active_path,
            static_mac=bool(details.get("static_mac", False)),
            restore_to_primary=int(details.get("restore_to_primary") or 0),
            endpoints=endpoints,
            links=links,
            backup_links=backup_links,
            internal_ids=self._parse_internal_ids(details.get("internal_ids") or {}),
            description=details.get("description") or "",
            created_by=self._person(details.get("created_by")),
            created_on=str(details.get("created_on") or ""),
            last_modified_by=self._person(details.get("last_modified_by")),
            last_edited=str(details.get("last_edited") or ""),
            workgroup=self._workgroup(details.get("workgroup")),
        )

    def _parse_endpoint(self, config: dict[str, Any]) -> Endpoint:
        """Parse a single endpoint."""
        node = config.get("node")
        if not node:
            raise ParseError(f"Endpoint is missing its node: {config}")

        try:
            port_no = int(config["port_no"])
        except (KeyError, ValueError, TypeError):
            raise ParseError(f"Endpoint on {node} has an invalid port_no")

        mac_addrs = tuple(
            normalize_mac(mac["mac_address"] if isinstance(mac, dict) else mac)
            for mac in config.get("mac_addrs") or []
        )

        interface_id = config.get("interface_id")

        return Endpoint(
            node=node,
            port_no=port_no,
            tag=self._parse_tag(config.get("tag"), node),
            interface=config.get("interface") or "",
            interface_id=int(interface_id) if interface_id is not None else None,
            mac_addrs=mac_addrs,
            bandwidth=config.get("bandwidth"),
            local=bool(config.get("local", True)),
        )

    def _parse_tag(self, tag: Any, node: str) -> int:
        """Parse an outer VLAN tag, mapping 'untagged' to UNTAGGED."""
        if tag is None or (isinstance(tag, str) and tag.lower() == "untagged"):
            return UNTAGGED
        try:
            tag = int(tag)
        except (ValueError, TypeError):
            raise ParseError(f"Invalid VLAN tag for endpoint on {node}: {tag}")
        if tag != UNTAGGED and not 1 <= tag <= 4095:
            raise ParseError(
                f"Invalid VLAN tag {tag} for endpoint on {node}: must be between 1 and 4095"
            )
        return tag

    def _parse_link(self, config: dict[str, Any]) -> Link:
        """Parse a single link."""
        name = config.get("name")
        if not name:
            raise ParseError(f"Link is missing its name: {config}")

        try:
            return Link(
                name=name,
                node_a=config["node_a"],
                node_z=config["node_z"],
                interface_a_id=int(config["interface_a_id"]),
                interface_z_id=int(config["interface_z_id"]),
                port_no_a=int(config["port_no_a"]),
                port_no_z=int(config["port_no_z"]),
                link_id=config.get("link_id"),
                interface_a=config.get("interface_a") or "",
                interface_z=config.get("interface_z") or "",
            )
        except KeyError as e:
            raise ParseError(f"Link {name} is missing field {e}")
        except (ValueError, TypeError) as e:
            raise ParseError(f"Link {name} has an invalid value: {e}")

    def _parse_internal_ids(
        self,
        config: dict[str, Any]
    ) -> dict[PathName, dict[str, dict[int, int]]]:
        """Parse path -> node -> interface_id -> tag."""
        internal_ids: dict[PathName, dict[str, dict[int, int]]] = {}

        for path, nodes in config.items():
            try:
                path_name = PathName(path)
            except ValueError:
                raise ParseError(f"Invalid path in internal_ids: {path}")

            internal_ids[path_name] = {}
            for node, interfaces in (nodes or {}).items():
                try:
                    internal_ids[path_name][node] = {
                        int(interface_id): int(tag)
                        for interface_id, tag in (interfaces or {}).items()
                    }
                except (ValueError, TypeError):
                    raise ParseError(f"Invalid internal VLAN ids for {node} on {path}")

        return internal_ids

    def _person(self, value: Optional[Any]) -> str:
        if isinstance(value, dict):
            parts = [value.get("given_names"), value.get("family_name")]
            return " ".join(p for p in parts if p)
        return str(value or "")

    def _workgroup(self, value: Optional[Any]) -> str:
        if isinstance(value, dict):
            return str(value.get("name") or "")
        return str(value or "")
