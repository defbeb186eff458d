"""Flow synthesizers.

Turns a circuit's path maps and topology graphs into switch flow rules:
- forwarding flows on every node of a path
- endpoint flows wiring customer ports into the path
- loopback endpoint flows for circuits that leave and re-enter one node
- static MAC flows steering unicast traffic at branching nodes
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Mapping

from ..config.settings import DEFAULT_PRIORITY, STATIC_MAC_PRIORITY
from ..errors import CircuitConfigError
from .flow_rule import (
    FlowMatch,
    FlowRule,
    mac_to_int,
    output,
    set_vlan,
)
from .graph import PathGraph
from .path_map import PathMap
from .schema import CircuitDetails, Endpoint, PathName

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InPort:
    """A port traffic can enter a node on, with the tag it carries."""
    port_no: int
    tag: int


class FlowSynthesizer:
    """Generate flow rules for one circuit."""

    def __init__(
        self,
        details: CircuitDetails,
        dpid_lookup: Mapping[str, int],
        loopback: bool = False,
        default_priority: int = DEFAULT_PRIORITY,
        static_mac_priority: int = STATIC_MAC_PRIORITY,
    ):
        """
        Initialize the synthesizer.

        Args:
            details: Circuit to generate flows for
            dpid_lookup: Node name -> datapath id
            loopback: Whether the circuit is a loopback circuit
            default_priority: Priority of forwarding and endpoint flows
            static_mac_priority: Priority of destination MAC flows
        """
        self.details = details
        self.dpid_lookup = dpid_lookup
        self.loopback = loopback
        self.default_priority = default_priority
        self.static_mac_priority = static_mac_priority

    def _dpid(self, node: str) -> int:
        try:
            return self.dpid_lookup[node]
        except KeyError:
            raise CircuitConfigError(f"No datapath id known for node {node}")

    def _flow(self, node: str, vlan: int, in_port: int, tag: int, out_port: int) -> FlowRule:
        return FlowRule(
            dpid=self._dpid(node),
            match=FlowMatch(dl_vlan=vlan, in_port=in_port),
            actions=[set_vlan(tag), output(out_port)],
            priority=self.default_priority,
        )

    # === Forwarding ===

    def path_flows(self, path_map: PathMap) -> list[FlowRule]:
        """
        Swap-and-forward rules for every pair of path ports on every node.

        On a loopback circuit the endpoint node is skipped; its rules come
        from loopback_endpoint_flows.
        """
        flows = []
        endpoint_nodes = {ep.node for ep in self.details.endpoints}

        for node in path_map.nodes():
            if self.loopback and node in endpoint_nodes:
                logger.debug(f"Skipping loopback endpoint node {node}")
                continue

            ports = path_map.ports(node)
            for in_port in ports:
                for out_port in ports:
                    if out_port == in_port:
                        continue
                    for local_tag in path_map.translations(node, in_port):
                        remote_tag = path_map.remote_tag(node, out_port, local_tag)
                        flows.append(
                            self._flow(node, local_tag, in_port, remote_tag, out_port)
                        )

        logger.debug(f"Generated {len(flows)} {path_map.path.value} path flows")
        return flows

    # === Endpoints ===

    def endpoint_flows(self, path_map: PathMap) -> list[FlowRule]:
        """
        Rules translating between customer tags and internal tags.

        For each endpoint, one pair of rules per path port on its node, plus a
        direct pair for every other endpoint on the same node.
        """
        if self.loopback:
            return self.loopback_endpoint_flows(path_map.path)

        flows = []
        endpoints = self.details.endpoints

        for endpoint in endpoints:
            node = endpoint.node

            for other_port in path_map.ports(node):
                for local_tag, remote_tag in path_map.translations(node, other_port).items():
                    # customer -> network
                    flows.append(self._flow(
                        node, endpoint.tag, endpoint.port_no, remote_tag, other_port
                    ))
                    # network -> customer
                    flows.append(self._flow(
                        node, local_tag, other_port, endpoint.tag, endpoint.port_no
                    ))

            # same switch endpoints are wired directly, whichever path is active
            for other in endpoints:
                if other is endpoint or other.node != node:
                    continue
                flows.append(self._flow(
                    node, endpoint.tag, endpoint.port_no, other.tag, other.port_no
                ))
                flows.append(self._flow(
                    node, other.tag, other.port_no, endpoint.tag, endpoint.port_no
                ))

        logger.debug(f"Generated {len(flows)} {path_map.path.value} endpoint flows")
        return flows

    def loopback_endpoint_flows(self, path: PathName) -> list[FlowRule]:
        """
        Endpoint rules for a loopback circuit.

        Endpoints sorted by tag are paired with the links leaving their node,
        sorted by name, taking links from the end of the sorted list: the
        first endpoint gets the last link, the second the one before it.
        """
        endpoints = sorted(self.details.endpoints, key=lambda ep: ep.tag)
        if not endpoints:
            return []
        node = endpoints[0].node

        adjacent = []
        for link in sorted(self.details.path_links(path), key=lambda l: l.name):
            side = link.side(node)
            if side is None:
                continue
            port_no, interface_id = side
            peer_node, peer_interface_id = link.peer(node)
            adjacent.append((
                port_no,
                self.details.internal_tag(path, node, interface_id),
                self.details.internal_tag(path, peer_node, peer_interface_id),
            ))

        flows = []
        for endpoint in endpoints:
            if not adjacent:
                logger.error(
                    f"Loopback circuit {self.details.circuit_id} has more endpoints "
                    f"than links leaving {node} on {path.value} path"
                )
                break
            port_no, local_tag, remote_tag = adjacent.pop()

            # edge port out to the adjacent node
            flows.append(self._flow(
                endpoint.node, endpoint.tag, endpoint.port_no, remote_tag, port_no
            ))
            # adjacent node back into the edge port
            flows.append(self._flow(
                endpoint.node, local_tag, port_no, endpoint.tag, endpoint.port_no
            ))

        logger.debug(f"Generated {len(flows)} {path.value} loopback endpoint flows")
        return flows

    # === Static MAC ===

    def _in_ports(self, path: PathName) -> dict[str, list[InPort]]:
        """Endpoint and link ports of every node, with their ingress tag."""
        in_ports: dict[str, list[InPort]] = defaultdict(list)

        for endpoint in self.details.endpoints:
            in_ports[endpoint.node].append(InPort(endpoint.port_no, endpoint.tag))

        for link in self.details.path_links(path):
            in_ports[link.node_a].append(InPort(
                link.port_no_a,
                self.details.internal_tag(path, link.node_a, link.interface_a_id),
            ))
            in_ports[link.node_z].append(InPort(
                link.port_no_z,
                self.details.internal_tag(path, link.node_z, link.interface_z_id),
            ))

        return in_ports

    def static_mac_flows(self, path: PathName, graph: PathGraph) -> list[FlowRule]:
        """
        Destination MAC rules at complex nodes.

        A complex node has graph degree plus local endpoint count above 2. At
        such a node every endpoint's MAC addresses are steered along the
        shortest path toward that endpoint instead of being flooded.
        """
        flows = []
        in_ports = self._in_ports(path)

        node_ends: dict[str, int] = defaultdict(int)
        for endpoint in self.details.endpoints:
            node_ends[endpoint.node] += 1

        for vert in graph.nodes():
            total = graph.degree(vert) + node_ends[vert]
            logger.debug(
                f"Vert: {vert} has degree: {graph.degree(vert)} and "
                f"{node_ends[vert]} endpoints for total degree {total}"
            )
            if total <= 2:
                continue

            logger.debug(f"Processing complex node {vert}")
            for endpoint in self.details.endpoints:
                flows.extend(self._steer_to_endpoint(path, graph, vert, endpoint, in_ports[vert]))

        logger.debug(f"Generated {len(flows)} {path.value} static MAC flows")
        return flows

    def _steer_to_endpoint(
        self,
        path: PathName,
        graph: PathGraph,
        vert: str,
        endpoint: Endpoint,
        in_ports: list[InPort],
    ) -> list[FlowRule]:
        hops = graph.shortest_path(vert, endpoint.node)
        if hops is None:
            logger.error(
                f"No route from {vert} to endpoint node {endpoint.node} "
                f"on {path.value} path"
            )
            return []

        if len(hops) > 1:
            next_hop = hops[1]
            link = graph.find_link(vert, next_hop)
            if link is None:
                logger.error(
                    f"Couldn't find the link between {vert} and {next_hop}, "
                    f"but there should be one"
                )
                return []
            out_port, _ = link.side(vert)
            peer_node, peer_interface_id = link.peer(vert)
            out_tag = self.details.internal_tag(path, peer_node, peer_interface_id)
        else:
            # endpoint is on this node
            out_port = endpoint.port_no
            out_tag = endpoint.tag

        flows = []
        for in_port in in_ports:
            if in_port.port_no == out_port:
                continue
            for mac in endpoint.mac_addrs:
                logger.debug(f"Creating flow for mac_addr {mac} on node {vert}")
                flows.append(FlowRule(
                    dpid=self._dpid(vert),
                    match=FlowMatch(
                        dl_vlan=in_port.tag,
                        in_port=in_port.port_no,
                        dl_dst=mac_to_int(mac),
                    ),
                    actions=[set_vlan(out_tag), output(out_port)],
                    priority=self.static_mac_priority,
                ))
        return flows
