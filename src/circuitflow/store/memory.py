"""In-memory circuit database, optionally seeded from YAML.

Example seed file:

```yaml
nodes:
  sw-a: 1
  sw-b: 2
links:
  link-ab: up
circuits:
  - circuit_id: 100
    name: demo
    endpoints:
      - {node: sw-a, port_no: 1, tag: 100}
      - {node: sw-b, port_no: 1, tag: 200}
    links:
      - {name: link-ab, node_a: sw-a, node_z: sw-b, interface_a_id: 11,
         interface_z_id: 21, port_no_a: 2, port_no_z: 2}
    backup_links: []
    internal_ids:
      primary: {sw-a: {11: 1000}, sw-b: {21: 1001}}
path_instantiations:
  - {path_id: 1, circuit_id: 100, path_type: primary, path_state: active}
```

Circuits without listed path instantiations get an active primary and, when
they have backup links, an available backup.
"""
import copy
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from ..circuit.schema import PathInstantiation, PathName, PathState
from ..errors import CircuitConfigError, TransactionError
from .database import CircuitDatabase, PathTransaction

logger = logging.getLogger(__name__)


class MemoryTransaction(PathTransaction):
    """Transaction over a working copy of one circuit's instantiations."""

    def __init__(self, db: "InMemoryCircuitDatabase", circuit_id: int, lock: threading.Lock):
        super().__init__(circuit_id)
        self._db = db
        self._lock = lock
        with db._data_lock:
            self._rows = [
                inst for inst in db._instantiations if inst.circuit_id == circuit_id
            ]

    def _now(self) -> int:
        return self._db.clock()

    def _replace(self, old: PathInstantiation, new: PathInstantiation) -> None:
        for i, row in enumerate(self._rows):
            if row.path_instantiation_id == old.path_instantiation_id:
                self._rows[i] = new
                return
        raise TransactionError(
            f"Path instantiation {old.path_instantiation_id} not found "
            f"for circuit {self.circuit_id}"
        )

    def find_current(
        self,
        path_type: PathName,
        path_state: PathState,
    ) -> Optional[PathInstantiation]:
        self._check_open()
        for row in self._rows:
            if row.path_type == path_type and row.path_state == path_state and row.is_current:
                return row
        return None

    def end_instantiation(self, instantiation: PathInstantiation) -> PathInstantiation:
        self._check_open()
        ended = PathInstantiation(
            path_instantiation_id=instantiation.path_instantiation_id,
            path_id=instantiation.path_id,
            circuit_id=instantiation.circuit_id,
            path_type=instantiation.path_type,
            path_state=instantiation.path_state,
            start_epoch=instantiation.start_epoch,
            end_epoch=self._now(),
        )
        self._replace(instantiation, ended)
        return ended

    def insert_available(self, path_id: int, path_type: PathName) -> PathInstantiation:
        self._check_open()
        inst = PathInstantiation(
            path_instantiation_id=self._db._next_instantiation_id(),
            path_id=path_id,
            circuit_id=self.circuit_id,
            path_type=path_type,
            path_state=PathState.AVAILABLE,
            start_epoch=self._now(),
            end_epoch=-1,
        )
        self._rows.append(inst)
        return inst

    def promote(self, instantiation: PathInstantiation) -> PathInstantiation:
        self._check_open()
        if not instantiation.is_current:
            raise TransactionError(
                f"Cannot promote ended path instantiation {instantiation.path_instantiation_id}"
            )
        active = PathInstantiation(
            path_instantiation_id=instantiation.path_instantiation_id,
            path_id=instantiation.path_id,
            circuit_id=instantiation.circuit_id,
            path_type=instantiation.path_type,
            path_state=PathState.ACTIVE,
            start_epoch=instantiation.start_epoch,
            end_epoch=-1,
        )
        self._replace(instantiation, active)
        return active

    def _do_commit(self) -> None:
        try:
            with self._db._data_lock:
                others = [
                    inst for inst in self._db._instantiations
                    if inst.circuit_id != self.circuit_id
                ]
                self._db._instantiations = others + self._rows
            logger.debug(f"Committed transaction for circuit {self.circuit_id}")
        finally:
            self._lock.release()

    def _do_rollback(self) -> None:
        self._rows = []
        self._lock.release()
        logger.debug(f"Rolled back transaction for circuit {self.circuit_id}")


class InMemoryCircuitDatabase(CircuitDatabase):
    """Circuit database kept in process memory."""

    def __init__(
        self,
        circuits: Optional[list[dict[str, Any]]] = None,
        nodes: Optional[dict[str, int]] = None,
        links: Optional[dict[str, str]] = None,
        path_instantiations: Optional[list[dict[str, Any]]] = None,
        clock: Callable[[], int] = lambda: int(time.time()),
    ):
        self.clock = clock
        self._circuits: dict[int, dict[str, Any]] = {}
        self._nodes: dict[str, int] = dict(nodes or {})
        self._links: dict[str, str] = dict(links or {})
        self._instantiations: list[PathInstantiation] = []
        self._data_lock = threading.RLock()
        self._circuit_locks: dict[int, threading.Lock] = {}
        self._last_instantiation_id = 0
        self._last_path_id = 0

        for details in circuits or []:
            self.add_circuit(details)

        for row in path_instantiations or []:
            self._add_instantiation(row)

        self._default_instantiations()

    @classmethod
    def from_yaml(cls, path: str | Path, **kwargs: Any) -> "InMemoryCircuitDatabase":
        """Seed a database from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        logger.info(f"Loading circuit database from {path}")
        return cls(
            circuits=data.get("circuits", []),
            nodes=data.get("nodes", {}),
            links=data.get("links", {}),
            path_instantiations=data.get("path_instantiations", []),
            **kwargs,
        )

    # === Seeding ===

    def add_circuit(self, details: dict[str, Any]) -> None:
        if details.get("circuit_id") is None:
            raise CircuitConfigError(f"Circuit is missing circuit_id: {details.get('name')}")
        self._circuits[int(details["circuit_id"])] = copy.deepcopy(details)

    def _next_instantiation_id(self) -> int:
        with self._data_lock:
            self._last_instantiation_id += 1
            return self._last_instantiation_id

    def _add_instantiation(self, row: dict[str, Any]) -> None:
        path_id = int(row["path_id"])
        self._last_path_id = max(self._last_path_id, path_id)
        self._instantiations.append(PathInstantiation(
            path_instantiation_id=int(row.get("path_instantiation_id") or self._next_instantiation_id()),
            path_id=path_id,
            circuit_id=int(row["circuit_id"]),
            path_type=PathName(row.get("path_type", "primary")),
            path_state=PathState(row.get("path_state", "active")),
            start_epoch=int(row.get("start_epoch", 0)),
            end_epoch=int(row.get("end_epoch", -1)),
        ))
        self._last_instantiation_id = max(
            self._last_instantiation_id,
            max(inst.path_instantiation_id for inst in self._instantiations),
        )

    def _default_instantiations(self) -> None:
        seeded = {inst.circuit_id for inst in self._instantiations}
        for circuit_id, details in self._circuits.items():
            if circuit_id in seeded:
                continue
            active = PathName(details.get("active_path", "primary"))
            paths = [PathName.PRIMARY]
            if details.get("backup_links"):
                paths.append(PathName.BACKUP)
            for path in paths:
                self._last_path_id += 1
                self._add_instantiation({
                    "path_id": self._last_path_id,
                    "circuit_id": circuit_id,
                    "path_type": path.value,
                    "path_state": "active" if path == active else "available",
                })

    # === Queries ===

    def get_circuit_details(
        self,
        circuit_id: int,
        link_status: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        with self._data_lock:
            if circuit_id not in self._circuits:
                raise CircuitConfigError(f"Unknown circuit: {circuit_id}")
            details = copy.deepcopy(self._circuits[circuit_id])

            for inst in self._instantiations:
                if (inst.circuit_id == circuit_id and inst.is_current
                        and inst.path_state == PathState.ACTIVE):
                    details["active_path"] = inst.path_type.value
                    break

        statuses = link_status if link_status is not None else self._links
        for key in ("links", "backup_links"):
            for link in details.get(key) or []:
                if link.get("name") in statuses:
                    link["status"] = statuses[link["name"]]

        return details

    def get_node_dpid_hash(self) -> dict[str, int]:
        return dict(self._nodes)

    def get_current_links(self) -> list[dict[str, Any]]:
        with self._data_lock:
            return [
                {"name": name, "status": status}
                for name, status in self._links.items()
            ]

    def set_link_status(self, name: str, status: str) -> None:
        with self._data_lock:
            self._links[name] = status

    def get_path_instantiations(self, circuit_id: int) -> list[PathInstantiation]:
        """All instantiations of a circuit, oldest first."""
        with self._data_lock:
            return sorted(
                (inst for inst in self._instantiations if inst.circuit_id == circuit_id),
                key=lambda inst: inst.path_instantiation_id,
            )

    # === Transactions ===

    def begin(self, circuit_id: int) -> MemoryTransaction:
        with self._data_lock:
            lock = self._circuit_locks.setdefault(circuit_id, threading.Lock())
        lock.acquire()
        return MemoryTransaction(self, circuit_id, lock)
