"""Topology classification of a circuit's endpoints."""
from abc import ABC, abstractmethod
from typing import Sequence

from .schema import Endpoint, Link


class Topology(ABC):
    """Classifies endpoint sets for the flow compiler."""

    @abstractmethod
    def is_loopback(
        self,
        endpoints: Sequence[Endpoint],
        links: Sequence[Link] = (),
    ) -> bool:
        """True when the circuit leaves a node and loops back to it."""
        pass


class NodeTopology(Topology):
    """Classify endpoints by the node they terminate on.

    Endpoints that all share one node form a loopback circuit only when the
    circuit is routed over links; without links they are plain same-switch
    endpoints.
    """

    def is_loopback(
        self,
        endpoints: Sequence[Endpoint],
        links: Sequence[Link] = (),
    ) -> bool:
        if len(endpoints) < 2 or not links:
            return False
        return len({endpoint.node for endpoint in endpoints}) == 1
