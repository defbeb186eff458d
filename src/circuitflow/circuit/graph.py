"""Topology graph of one circuit path.

Vertices are node names, edges are physical links. Parallel links between the
same two nodes collapse to one edge; the underlying Link objects are kept in a
node-pair index built alongside the graph.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

import networkx as nx

from .schema import Endpoint, Link

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathGraph:
    """Undirected topology graph plus its node-pair -> link index."""
    graph: nx.Graph
    link_index: dict[tuple[str, str], Link] = field(default_factory=dict)

    def degree(self, node: str) -> int:
        if node not in self.graph:
            return 0
        return self.graph.degree(node)

    def nodes(self) -> list[str]:
        return list(self.graph.nodes)

    def find_link(self, node_a: str, node_z: str) -> Optional[Link]:
        return self.link_index.get((node_a, node_z))

    def shortest_path(self, source: str, target: str) -> Optional[list[str]]:
        """Hop-count shortest path from source to target, or None if unreachable.

        Ties between equal-length paths follow neighbour insertion order, i.e.
        the order links appear in the path's link list.
        """
        try:
            return nx.shortest_path(self.graph, source, target)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None


def build_path_graph(
    links: Iterable[Link],
    endpoints: Iterable[Endpoint] = (),
) -> PathGraph:
    """
    Build the topology graph for one path.

    Every endpoint node becomes a vertex even when no link terminates there,
    so a node that is only a traffic source/sink shows up with degree 0.

    Args:
        links: Links of the path
        endpoints: Endpoints of the circuit

    Returns:
        PathGraph; edgeless when there are no links
    """
    graph = nx.Graph()
    link_index: dict[tuple[str, str], Link] = {}

    for link in links:
        graph.add_node(link.node_a)
        graph.add_node(link.node_z)
        graph.add_edge(link.node_a, link.node_z)
        link_index.setdefault((link.node_a, link.node_z), link)
        link_index.setdefault((link.node_z, link.node_a), link)

    for endpoint in endpoints:
        graph.add_node(endpoint.node)

    nx.freeze(graph)

    logger.debug(
        f"Built graph with {graph.number_of_nodes()} nodes and "
        f"{graph.number_of_edges()} edges"
    )
    return PathGraph(graph=graph, link_index=link_index)
