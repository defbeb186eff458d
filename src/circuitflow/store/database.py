"""Persistence contract used by the circuit compiler and path controller.

The database owns circuits, links, datapath ids and path instantiations.
Path switch-over runs inside a PathTransaction, which holds a per-circuit lock
from begin() until commit() or rollback() so two concurrent switch requests
for one circuit can never both see the same active instantiation.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from ..circuit.schema import PathInstantiation, PathName, PathState
from ..errors import TransactionError

logger = logging.getLogger(__name__)


class PathTransaction(ABC):
    """An open transaction over one circuit's path instantiations."""

    def __init__(self, circuit_id: int):
        self.circuit_id = circuit_id
        self._on_commit: list[Callable[[], None]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def on_commit(self, callback: Callable[[], None]) -> None:
        """Run callback once the transaction commits; dropped on rollback."""
        self._on_commit.append(callback)

    def _check_open(self) -> None:
        if self._closed:
            raise TransactionError(f"Transaction for circuit {self.circuit_id} is closed")

    def commit(self) -> None:
        self._check_open()
        self._do_commit()
        self._closed = True
        callbacks, self._on_commit = self._on_commit, []
        for callback in callbacks:
            callback()

    def rollback(self) -> None:
        if self._closed:
            return
        self._do_rollback()
        self._closed = True
        self._on_commit = []

    @abstractmethod
    def _do_commit(self) -> None:
        pass

    @abstractmethod
    def _do_rollback(self) -> None:
        pass

    # === Path instantiation queries and mutations ===

    @abstractmethod
    def find_current(
        self,
        path_type: PathName,
        path_state: PathState,
    ) -> Optional[PathInstantiation]:
        """Open (end_epoch == -1) instantiation of path_type in path_state."""
        pass

    @abstractmethod
    def end_instantiation(self, instantiation: PathInstantiation) -> PathInstantiation:
        """Close the validity window of an instantiation."""
        pass

    @abstractmethod
    def insert_available(self, path_id: int, path_type: PathName) -> PathInstantiation:
        """Insert a new open 'available' instantiation of path_id."""
        pass

    @abstractmethod
    def promote(self, instantiation: PathInstantiation) -> PathInstantiation:
        """Change an open instantiation's state to 'active'."""
        pass


class CircuitDatabase(ABC):
    """Abstract persistence layer."""

    @abstractmethod
    def get_circuit_details(
        self,
        circuit_id: int,
        link_status: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Load the raw details of a circuit.

        Raises:
            CircuitConfigError: If the circuit does not exist
        """
        pass

    @abstractmethod
    def get_node_dpid_hash(self) -> dict[str, int]:
        """Node name -> datapath id."""
        pass

    @abstractmethod
    def get_current_links(self) -> list[dict[str, Any]]:
        """All links with their current status ('up', 'down', 'unknown')."""
        pass

    @abstractmethod
    def begin(self, circuit_id: int) -> PathTransaction:
        """Open a transaction holding the circuit's lock."""
        pass

    @contextmanager
    def transaction(self, circuit_id: int) -> Iterator[PathTransaction]:
        """
        Run a block in a transaction.

        Commits when the block completes, rolls back and re-raises when it
        raises.

        Usage:
            with db.transaction(circuit_id) as txn:
                active = txn.find_current(PathName.PRIMARY, PathState.ACTIVE)
        """
        txn = self.begin(circuit_id)
        try:
            yield txn
        except BaseException:
            logger.debug(f"Rolling back transaction for circuit {circuit_id}")
            txn.rollback()
            raise
        else:
            if not txn.closed:
                txn.commit()
