"""Circuit compiler - turns provisioned circuits into switch flow rules.

The compiler builds, per path of a circuit:
- a topology graph of the path's links
- a tag translation map from the internal VLAN ids
- forwarding, endpoint and static MAC flow rules, deduplicated

Usage:
    from circuitflow.circuit import CircuitParser, compile_circuit

    details = CircuitParser().parse(raw_details)
    compiled = compile_circuit(details, dpid_lookup)
    flows = compiled.all_flows()
"""

from .circuit import Circuit
from .compiler import CompiledCircuit, compile_circuit
from .controller import PathController
from .dedup import dedup_flows
from .flow_rule import FlowAction, FlowMatch, FlowRule, mac_to_int
from .flows import FlowSynthesizer
from .graph import PathGraph, build_path_graph
from .parser import CircuitParser, normalize_mac
from .path_map import PathMap, PathMapEntry, build_path_map
from .report import generate_clr, generate_clr_raw
from .schema import (
    UNTAGGED,
    CircuitDetails,
    Endpoint,
    FlowCategory,
    Link,
    LinkStatus,
    PathInstantiation,
    PathName,
    PathState,
    PathSwitchResult,
)
from .topology import NodeTopology, Topology

__all__ = [
    # Facade
    "Circuit",
    # Compiler
    "CompiledCircuit",
    "compile_circuit",
    "PathController",
    # Schema classes
    "UNTAGGED",
    "CircuitDetails",
    "Endpoint",
    "FlowCategory",
    "Link",
    "LinkStatus",
    "PathInstantiation",
    "PathName",
    "PathState",
    "PathSwitchResult",
    # Flow rules
    "FlowAction",
    "FlowMatch",
    "FlowRule",
    "mac_to_int",
    # Components (for advanced use)
    "CircuitParser",
    "normalize_mac",
    "PathGraph",
    "build_path_graph",
    "PathMap",
    "PathMapEntry",
    "build_path_map",
    "FlowSynthesizer",
    "dedup_flows",
    "generate_clr",
    "generate_clr_raw",
    "NodeTopology",
    "Topology",
]
