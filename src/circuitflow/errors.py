"""Exceptions raised while loading, compiling and switching circuits."""


class CircuitError(Exception):
    """Base class for all circuit errors."""
    pass


class CircuitConfigError(CircuitError):
    """Missing database handle, missing circuit identity or unknown circuit."""
    pass


class ParseError(CircuitError):
    """Error parsing persisted circuit details."""
    pass


class VlanMappingError(CircuitError):
    """A link references a (node, interface) with no internal VLAN id."""

    def __init__(self, path: str, node: str, interface_id: int):
        self.path = path
        self.node = node
        self.interface_id = interface_id
        super().__init__(
            f"No internal VLAN id for node {node} interface {interface_id} "
            f"on {path} path"
        )


class InvalidPathError(CircuitError, ValueError):
    """Path selector is neither 'primary' nor 'backup'."""

    def __init__(self, path: object):
        self.path = path
        super().__init__(f"Path '{path}' is invalid")


class TransactionError(CircuitError):
    """A persistence step of a transaction failed."""
    pass
