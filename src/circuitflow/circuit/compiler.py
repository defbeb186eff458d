"""Circuit compiler - turns circuit details into switch flow rules.

Runs, per path:
1. Topology graph construction
2. Tag translation (path map) assembly
3. Static MAC, forwarding and endpoint flow synthesis
4. Per category deduplication

The result is an immutable CompiledCircuit; reloading a circuit means
compiling again and replacing the old value.
"""
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..config.settings import CompilerSettings
from ..utils.logging_config import timed, timed_section_sync
from .dedup import dedup_flows
from .flow_rule import FlowRule
from .flows import FlowSynthesizer
from .graph import PathGraph, build_path_graph
from .path_map import PathMap, path_map_for
from .schema import CircuitDetails, FlowCategory, PathName
from .topology import NodeTopology, Topology

logger = logging.getLogger(__name__)

FlowKey = tuple[FlowCategory, PathName]


@dataclass(frozen=True)
class CompiledCircuit:
    """Derived graph, path map and flow state of one circuit."""
    details: CircuitDetails
    loopback: bool = False
    graphs: Mapping[PathName, PathGraph] = field(default_factory=dict)
    path_maps: Mapping[PathName, PathMap] = field(default_factory=dict)
    flow_sets: Mapping[FlowKey, tuple[FlowRule, ...]] = field(default_factory=dict)

    @property
    def circuit_id(self) -> int:
        return self.details.circuit_id

    @property
    def active_path(self) -> PathName:
        return self.details.active_path

    def with_active_path(self, path: PathName) -> "CompiledCircuit":
        """Same compiled flows with a different active path."""
        return dataclasses.replace(
            self, details=dataclasses.replace(self.details, active_path=path)
        )

    def flows(self, category: FlowCategory, path: PathName) -> list[FlowRule]:
        """Copies of the deduplicated flows of one category and path."""
        return [flow.copy() for flow in self.flow_sets.get((category, path), ())]

    def all_flows(self, path: Optional[PathName] = None) -> list[FlowRule]:
        """
        Deduplicated flows for installation.

        Without a path: forwarding flows of both paths, then endpoint and
        static MAC flows of the active path. With a path: that path's
        forwarding, endpoint and static MAC flows.
        """
        flows: list[FlowRule] = []
        if path is None:
            flows += self.flows(FlowCategory.PATH, PathName.PRIMARY)
            flows += self.flows(FlowCategory.PATH, PathName.BACKUP)
            flows += self.flows(FlowCategory.ENDPOINT, self.active_path)
            flows += self.flows(FlowCategory.STATIC_MAC, self.active_path)
        else:
            for category in FlowCategory:
                flows += self.flows(category, path)
        return dedup_flows(flows)


@timed("compile")
def compile_circuit(
    details: CircuitDetails,
    dpid_lookup: Mapping[str, int],
    topology: Optional[Topology] = None,
    settings: Optional[CompilerSettings] = None,
) -> CompiledCircuit:
    """
    Compile a circuit into its flow rules.

    Args:
        details: Parsed circuit details
        dpid_lookup: Node name -> datapath id
        topology: Loopback classifier (default: NodeTopology)
        settings: Flow priorities (default: CompilerSettings())

    Returns:
        CompiledCircuit

    Raises:
        VlanMappingError: If a link end has no internal VLAN id
        CircuitConfigError: If a node has no datapath id
    """
    topology = topology or NodeTopology()
    settings = settings or CompilerSettings()

    loopback = topology.is_loopback(details.endpoints, details.links)
    synthesizer = FlowSynthesizer(
        details,
        dpid_lookup,
        loopback=loopback,
        default_priority=settings.default_priority,
        static_mac_priority=settings.static_mac_priority,
    )

    paths = [PathName.PRIMARY]
    if details.has_backup_path:
        logger.debug(f"Circuit {details.circuit_id} has backup path")
        paths.append(PathName.BACKUP)

    graphs: dict[PathName, PathGraph] = {}
    path_maps: dict[PathName, PathMap] = {}
    flow_sets: dict[FlowKey, tuple[FlowRule, ...]] = {}

    for path in paths:
        logger.debug(f"Creating {path.value} path graph for circuit {details.circuit_id}")
        graphs[path] = build_path_graph(details.path_links(path), details.endpoints)
        path_maps[path] = path_map_for(details, path)

    for path in PathName:
        if path not in path_maps:
            for category in FlowCategory:
                flow_sets[(category, path)] = ()
            continue

        with timed_section_sync("synthesize", circuit_id=details.circuit_id, path=path.value):
            static_mac = []
            if details.static_mac:
                static_mac = synthesizer.static_mac_flows(path, graphs[path])
            forwarding = synthesizer.path_flows(path_maps[path])
            endpoint = synthesizer.endpoint_flows(path_maps[path])

        flow_sets[(FlowCategory.PATH, path)] = tuple(dedup_flows(forwarding))
        flow_sets[(FlowCategory.ENDPOINT, path)] = tuple(dedup_flows(endpoint))
        flow_sets[(FlowCategory.STATIC_MAC, path)] = tuple(dedup_flows(static_mac))

    compiled = CompiledCircuit(
        details=details,
        loopback=loopback,
        graphs=graphs,
        path_maps=path_maps,
        flow_sets=flow_sets,
    )
    logger.info(
        f"Compiled circuit {details.circuit_id} ({details.name}): "
        f"{sum(len(f) for f in flow_sets.values())} flows"
    )
    return compiled
