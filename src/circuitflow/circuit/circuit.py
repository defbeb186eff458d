"""Circuit - the object collaborators use to get flows for a provisioned circuit.

Usage:
    from circuitflow import Circuit, InMemoryCircuitDatabase

    db = InMemoryCircuitDatabase.from_yaml("circuits.yaml")
    circuit = Circuit(db, circuit_id=100)

    for flow in circuit.get_flows():
        install(flow)

    result = circuit.switch_active_path()
    if not result.success:
        print(circuit.error)
"""
import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from ..config.settings import CompilerSettings
from ..errors import CircuitConfigError, CircuitError
from .compiler import CompiledCircuit, compile_circuit
from .controller import PathController
from .flow_rule import FlowRule
from .parser import CircuitParser
from .report import generate_clr, generate_clr_raw
from .schema import (
    CircuitDetails,
    Endpoint,
    FlowCategory,
    Link,
    LinkStatus,
    PathName,
    PathSwitchResult,
)
from .topology import Topology

if TYPE_CHECKING:
    from ..store.database import CircuitDatabase, PathTransaction

logger = logging.getLogger(__name__)


class Circuit:
    """
    A provisioned circuit and its compiled flow rules.

    Requires a database handle and either a circuit_id or preloaded details.
    """

    def __init__(
        self,
        db: Optional["CircuitDatabase"],
        circuit_id: Optional[int] = None,
        details: Optional[Union[CircuitDetails, dict[str, Any]]] = None,
        link_status: Optional[Mapping[str, Any]] = None,
        just_display: bool = False,
        topology: Optional[Topology] = None,
        settings: Optional[CompilerSettings] = None,
        user: str = "system",
    ):
        """
        Load and compile a circuit.

        Args:
            db: Persistence layer
            circuit_id: Circuit to load from db
            details: Already loaded details (raw dict or CircuitDetails)
            link_status: Live link name -> status used when loading
            just_display: Load details for reporting only, skip flow compilation
            topology: Loopback classifier
            settings: Flow priorities
            user: User recorded in the audit log for path switches

        Raises:
            CircuitConfigError: Missing db, missing circuit identity or unknown circuit
            ParseError: Malformed details
            VlanMappingError: A link has no internal VLAN id
        """
        if db is None:
            logger.error("No Database Object specified")
            raise CircuitConfigError("No Database Object specified")
        if circuit_id is None and details is None:
            logger.error("No circuit id or details specified")
            raise CircuitConfigError("No circuit id or details specified")

        self.db = db
        self.link_status = link_status
        self.just_display = just_display
        self.topology = topology
        self.settings = settings or CompilerSettings()
        self.controller = PathController(db, user=user)
        self.parser = CircuitParser()
        self._error: Optional[str] = None

        if details is None:
            details = self._fetch(circuit_id)
        self._details, self._compiled = self._build(details)

    # === Loading ===

    def _fetch(self, circuit_id: int) -> dict[str, Any]:
        logger.debug(f"Loading Circuit data for circuit: {circuit_id}")
        return self.db.get_circuit_details(circuit_id, link_status=self.link_status)

    def _build(
        self,
        details: Union[CircuitDetails, dict[str, Any]],
    ) -> tuple[CircuitDetails, Optional[CompiledCircuit]]:
        if not isinstance(details, CircuitDetails):
            details = self.parser.parse(details)

        logger.debug(
            f"Processing circuit {details.circuit_id}, active path: {details.active_path.value}"
        )
        if self.just_display:
            return details, None

        compiled = compile_circuit(
            details,
            self.db.get_node_dpid_hash(),
            topology=self.topology,
            settings=self.settings,
        )
        return details, compiled

    def reload(self) -> None:
        """
        Reload details from the database and recompile.

        The previous state is kept if loading or compiling fails.
        """
        circuit_id = self._details.circuit_id
        try:
            details, compiled = self._build(self._fetch(circuit_id))
        except CircuitError as e:
            self._error = str(e)
            logger.error(f"Reload of circuit {circuit_id} failed: {e}")
            raise
        self._details, self._compiled = details, compiled

    update_circuit_details = reload

    # === Accessors ===

    @property
    def error(self) -> Optional[str]:
        """Message of the last failed operation."""
        return self._error

    @property
    def compiled(self) -> CompiledCircuit:
        if self._compiled is None:
            raise CircuitError(
                f"Circuit {self._details.circuit_id} was loaded for display only"
            )
        return self._compiled

    def get_id(self) -> int:
        return self._details.circuit_id

    @property
    def circuit_id(self) -> int:
        return self._details.circuit_id

    def get_name(self) -> str:
        return self._details.name

    def get_restore_to_primary(self) -> int:
        return self._details.restore_to_primary

    def get_details(self) -> CircuitDetails:
        return self._details

    def get_endpoints(self) -> list[Endpoint]:
        return list(self._details.endpoints)

    def get_active_path(self) -> PathName:
        return self._details.active_path

    def has_backup_path(self) -> bool:
        return self._details.has_backup_path

    def is_interdomain(self) -> bool:
        return self._details.interdomain

    def is_static_mac(self) -> bool:
        return self._details.static_mac

    def _path(self, path: Union[str, PathName]) -> PathName:
        try:
            return PathName.parse(path)
        except CircuitError as e:
            self._error = str(e)
            logger.error(self._error)
            raise

    # === Flows ===

    def get_flows(self, path: Optional[Union[str, PathName]] = None) -> list[FlowRule]:
        """
        Deduplicated flows to install.

        Args:
            path: None for every forwarding flow plus the active path's
                endpoint and static MAC flows; 'primary' or 'backup' for one
                path's flows

        Raises:
            InvalidPathError: If path is not 'primary' or 'backup'
        """
        selected = self._path(path) if path is not None else None
        return self.compiled.all_flows(selected)

    def get_endpoint_flows(self, path: Union[str, PathName]) -> list[FlowRule]:
        """Endpoint flows of one path."""
        return self.compiled.flows(FlowCategory.ENDPOINT, self._path(path))

    def get_path(self, path: Union[str, PathName]) -> list[Link]:
        """Links of one path; empty for a circuit without that path."""
        selected = self._path(path)
        logger.debug(f"Returning links for path '{selected.value}'")
        return list(self._details.path_links(selected))

    get_path_links = get_path

    def get_path_status(
        self,
        path: Union[str, PathName],
        link_status: Optional[Mapping[str, Any]] = None,
    ) -> LinkStatus:
        """Status of one path from live link_status or the database."""
        return self.controller.get_path_status(self._details, self._path(path), link_status)

    # === Reports ===

    def generate_clr(self) -> str:
        """Human readable circuit report."""
        return generate_clr(self._details)

    def generate_clr_raw(self) -> str:
        """Every flow of the circuit, human readable."""
        return generate_clr_raw(self.get_flows())

    # === Switch-over ===

    def _set_active_path(self, path: PathName) -> None:
        self._details = dataclasses.replace(self._details, active_path=path)
        if self._compiled is not None:
            self._compiled = self._compiled.with_active_path(path)

    def switch_active_path(
        self,
        commit: bool = True,
        transaction: Optional["PathTransaction"] = None,
    ) -> PathSwitchResult:
        """
        Fail over to the other path.

        Args:
            commit: Commit the switch here. When False, transaction must be
                given and the caller commits it.
            transaction: Transaction to run the switch in; one is opened
                when omitted

        Returns:
            PathSwitchResult; the in-memory active path changes only once the
            switch is committed
        """
        if not commit and transaction is None:
            raise CircuitConfigError("A transaction is required when commit is False")

        result = self.controller.change_path(self._details, transaction=transaction)
        if not result.success:
            self._error = result.error
            return result

        if result.committed:
            self._set_active_path(result.active_path)
            return result

        target = result.active_path
        transaction.on_commit(lambda: self._set_active_path(target))
        if commit:
            transaction.commit()
            result.committed = True
        return result

    change_path = switch_active_path
