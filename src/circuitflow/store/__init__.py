"""Persistence for circuits and path instantiations.

This package provides:
- CircuitDatabase: Contract the compiler and path controller load from
- PathTransaction: Atomic unit for path switch-over
- InMemoryCircuitDatabase: Transactional in-process implementation, YAML seedable
"""

from .database import CircuitDatabase, PathTransaction
from .memory import InMemoryCircuitDatabase, MemoryTransaction

__all__ = [
    "CircuitDatabase",
    "PathTransaction",
    "InMemoryCircuitDatabase",
    "MemoryTransaction",
]
