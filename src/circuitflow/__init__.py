"""circuitflow - flow rule compiler for provisioned Ethernet/MPLS circuits."""
from .circuit import (
    Circuit,
    CircuitDetails,
    CompiledCircuit,
    FlowRule,
    LinkStatus,
    PathName,
    PathSwitchResult,
    compile_circuit,
)
from .config import CompilerSettings
from .errors import (
    CircuitConfigError,
    CircuitError,
    InvalidPathError,
    ParseError,
    TransactionError,
    VlanMappingError,
)
from .store import CircuitDatabase, InMemoryCircuitDatabase

__version__ = "0.1.0"

__all__ = [
    "Circuit",
    "CircuitDetails",
    "CompiledCircuit",
    "FlowRule",
    "LinkStatus",
    "PathName",
    "PathSwitchResult",
    "compile_circuit",
    "CompilerSettings",
    "CircuitConfigError",
    "CircuitError",
    "InvalidPathError",
    "ParseError",
    "TransactionError",
    "VlanMappingError",
    "CircuitDatabase",
    "InMemoryCircuitDatabase",
]
