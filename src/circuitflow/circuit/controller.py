"""Path controller - path status evaluation and primary/backup switch-over."""
import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional

from ..errors import CircuitError, TransactionError
from ..utils.audit_log import ChangeTracker
from .schema import (
    CircuitDetails,
    LinkStatus,
    PathInstantiation,
    PathName,
    PathState,
    PathSwitchResult,
)

if TYPE_CHECKING:
    from ..store.database import CircuitDatabase, PathTransaction

logger = logging.getLogger(__name__)


class PathController:
    """Evaluate and switch the active path of a circuit."""

    def __init__(self, db: "CircuitDatabase", user: str = "system"):
        """
        Initialize the controller.

        Args:
            db: Persistence layer for link status and path instantiations
            user: User recorded in the audit log
        """
        self.db = db
        self.user = user

    # === Path status ===

    def _link_status(self, name: str, raw: Any) -> LinkStatus:
        if raw is None:
            return LinkStatus.UP
        try:
            return LinkStatus.parse(raw)
        except ValueError:
            # only down and unknown affect a path
            logger.debug(f"Ignoring unrecognised status {raw!r} of link {name}")
            return LinkStatus.UP

    def get_path_status(
        self,
        details: CircuitDetails,
        path: PathName,
        link_status: Optional[Mapping[str, Any]] = None,
    ) -> LinkStatus:
        """
        Classify a path from the status of its links.

        Any down link makes the path DOWN regardless of where it sits in the
        path; otherwise any unknown link makes it UNKNOWN; otherwise UP.
        Links without a recorded status count as up.

        Args:
            details: Circuit the path belongs to
            path: Which path to evaluate
            link_status: Live link name -> status; queried from the
                database when omitted
        """
        if link_status is None:
            link_status = {
                link["name"]: link["status"] for link in self.db.get_current_links()
            }
        statuses = {
            link.name: self._link_status(link.name, link_status.get(link.name))
            for link in details.path_links(path)
        }

        for status in (LinkStatus.DOWN, LinkStatus.UNKNOWN):
            for link in details.path_links(path):
                if statuses[link.name] == status:
                    logger.warning(
                        f"Path {path.value} of circuit {details.circuit_id} is "
                        f"{status.name.lower()} because link {link.name} is "
                        f"{status.name.lower()}"
                    )
                    return status

        return LinkStatus.UP

    # === Switch-over ===

    def change_path(
        self,
        details: CircuitDetails,
        transaction: Optional["PathTransaction"] = None,
    ) -> PathSwitchResult:
        """
        Make the alternate path of a circuit active.

        Runs as one transaction:
        1. Find the available instantiation of the target path
        2. Find the active instantiation of the current path
        3. End-stamp the current active instantiation
        4. Insert a new available instantiation cloned from it
        5. Promote the target instantiation to active

        With no transaction given, one is opened and committed here. With a
        caller supplied transaction, the caller commits; the result then has
        committed=False.

        Returns:
            PathSwitchResult; on failure nothing persisted changes
        """
        current = details.active_path
        target = current.alternate
        result = PathSwitchResult(
            circuit_id=details.circuit_id,
            previous_path=current,
            active_path=current,
        )
        tracker = ChangeTracker(self.user)

        if not details.has_backup_path:
            result.error = (
                f"Circuit {details.name} has no alternate path, refusing to try "
                f"to switch to alternate."
            )
            logger.error(result.error)
            tracker.log_switch(result)
            return result

        logger.debug(f"Circuit {details.name} is failing over to {target.value}")

        owns_transaction = transaction is None
        txn = transaction if transaction is not None else self.db.begin(details.circuit_id)
        try:
            self._switch(txn, current, target)
        except CircuitError as e:
            result.error = str(e)
            logger.error(f"Path switch for circuit {details.circuit_id} failed: {e}")
            txn.rollback()
            tracker.log_switch(result)
            return result
        except Exception:
            txn.rollback()
            raise

        if owns_transaction:
            txn.commit()
            result.committed = True

        result.success = True
        result.active_path = target
        tracker.log_switch(result)
        logger.info(f"Circuit {details.circuit_id} is now on {target.value}")
        return result

    def _switch(
        self,
        txn: "PathTransaction",
        current: PathName,
        target: PathName,
    ) -> PathInstantiation:
        available = txn.find_current(target, PathState.AVAILABLE)
        if available is None:
            raise TransactionError(f"Unable to find available instantiation of {target.value} path.")

        active = txn.find_current(current, PathState.ACTIVE)
        if active is None:
            raise TransactionError("Unable to find path_id for current path.")

        txn.end_instantiation(active)
        txn.insert_available(active.path_id, active.path_type)
        return txn.promote(available)
