"""Tests for path status evaluation and primary/backup switch-over."""
import logging
import threading

import pytest

from circuitflow import Circuit, CircuitConfigError, LinkStatus, PathName
from circuitflow.circuit import PathController, PathState
from circuitflow.errors import TransactionError
from circuitflow.store import MemoryTransaction


def states(db, circuit_id):
    """(path_type, path_state, open) for every instantiation, oldest first."""
    return [
        (inst.path_type.value, inst.path_state.value, inst.is_current)
        for inst in db.get_path_instantiations(circuit_id)
    ]


class TestLinkStatus:
    """Tests for the LinkStatus enumeration."""

    def test_codes(self):
        """Status codes match the stored numeric values."""
        assert LinkStatus.DOWN == 0
        assert LinkStatus.UP == 1
        assert LinkStatus.UNKNOWN == 2

    def test_parse_strings_and_ints(self):
        """Stored strings and integers both parse."""
        assert LinkStatus.parse("up") is LinkStatus.UP
        assert LinkStatus.parse(" Down ") is LinkStatus.DOWN
        assert LinkStatus.parse(2) is LinkStatus.UNKNOWN

    def test_parse_invalid(self):
        """Unknown status strings are rejected."""
        with pytest.raises(ValueError):
            LinkStatus.parse("flapping")


class TestPathStatus:
    """Tests for get_path_status."""

    def test_all_up(self, db):
        """A path of up links is UP."""
        circuit = Circuit(db, circuit_id=100)

        assert circuit.get_path_status("primary") == LinkStatus.UP == 1
        assert circuit.get_path_status("backup") == LinkStatus.UP

    def test_down_link_from_database(self, db):
        """Link status is read from the database when not supplied."""
        circuit = Circuit(db, circuit_id=100)
        db.set_link_status("link-cb", "down")

        assert circuit.get_path_status("backup") == LinkStatus.DOWN == 0
        assert circuit.get_path_status("primary") == LinkStatus.UP

    def test_unknown_link(self, db):
        """No down links but one unknown link is UNKNOWN."""
        circuit = Circuit(db, circuit_id=100)
        status = circuit.get_path_status("backup", {"link-ac": "up", "link-cb": "unknown"})

        assert status == LinkStatus.UNKNOWN == 2

    def test_down_wins_over_unknown_in_any_order(self, db):
        """DOWN takes precedence even when an unknown link comes first."""
        circuit = Circuit(db, circuit_id=100)
        status = circuit.get_path_status("backup", {"link-ac": "unknown", "link-cb": "down"})

        assert status == LinkStatus.DOWN

    def test_missing_status_counts_as_up(self, db):
        """Links absent from the live status map count as up."""
        circuit = Circuit(db, circuit_id=100)

        assert circuit.get_path_status("backup", {}) == LinkStatus.UP

    def test_numeric_statuses(self, db):
        """Live status maps may carry numeric codes."""
        circuit = Circuit(db, circuit_id=100)

        assert circuit.get_path_status("primary", {"link-ab": 0}) == LinkStatus.DOWN

    def test_unrecognised_status_off_path_ignored(self, db):
        """An odd status on a link outside the path does not break evaluation."""
        db.set_link_status("some-other-link", "maintenance")
        circuit = Circuit(db, circuit_id=100)

        assert circuit.get_path_status("primary") == LinkStatus.UP

    def test_unrecognised_status_on_path_counts_as_up(self, db):
        """Only down and unknown statuses affect a path."""
        circuit = Circuit(db, circuit_id=100)

        assert circuit.get_path_status("primary", {"link-ab": "maintenance"}) == LinkStatus.UP
        assert circuit.get_path_status(
            "backup", {"link-ac": "maintenance", "link-cb": "unknown"}
        ) == LinkStatus.UNKNOWN

    def test_down_path_logged(self, db, caplog):
        """Down paths are logged as warnings."""
        circuit = Circuit(db, circuit_id=100)
        with caplog.at_level(logging.WARNING):
            circuit.get_path_status("primary", {"link-ab": "down"})

        assert "link-ab" in caplog.text

    def test_missing_backup_is_up(self, db):
        """A path with no links has nothing down."""
        circuit = Circuit(db, circuit_id=200)

        assert circuit.get_path_status("backup") == LinkStatus.UP

    def test_invalid_path(self, db):
        """Path status needs a valid selector."""
        circuit = Circuit(db, circuit_id=100)
        with pytest.raises(ValueError):
            circuit.get_path_status("spare")


class TestSwitchActivePath:
    """Tests for failover between primary and backup."""

    def test_seeded_instantiations(self, db):
        """A circuit with backup starts with active primary and available backup."""
        assert states(db, 100) == [
            ("primary", "active", True),
            ("backup", "available", True),
        ]

    def test_failover_and_back(self, db):
        """Switching twice moves to backup then back to primary."""
        circuit = Circuit(db, circuit_id=100)

        result = circuit.switch_active_path()

        assert result.success
        assert result.committed
        assert result.previous_path == PathName.PRIMARY
        assert result.active_path == PathName.BACKUP
        assert circuit.get_active_path() == PathName.BACKUP
        assert states(db, 100) == [
            ("primary", "active", False),
            ("backup", "active", True),
            ("primary", "available", True),
        ]

        result = circuit.switch_active_path()

        assert result.success
        assert circuit.get_active_path() == PathName.PRIMARY
        assert states(db, 100) == [
            ("primary", "active", False),
            ("backup", "active", False),
            ("primary", "active", True),
            ("backup", "available", True),
        ]

    def test_ended_instantiation_stamped(self, db):
        """The replaced instantiation gets the clock as its end epoch."""
        Circuit(db, circuit_id=100).switch_active_path()
        ended = db.get_path_instantiations(100)[0]

        assert ended.end_epoch == 1700000000

    def test_clone_keeps_path_id(self, db):
        """The new available instantiation reuses the old path."""
        before = db.get_path_instantiations(100)
        Circuit(db, circuit_id=100).switch_active_path()
        after = db.get_path_instantiations(100)

        assert after[2].path_id == before[0].path_id
        assert after[2].path_state == PathState.AVAILABLE

    def test_active_path_persisted(self, db):
        """A freshly loaded circuit sees the switched path."""
        Circuit(db, circuit_id=100).switch_active_path()

        reloaded = Circuit(db, circuit_id=100)
        assert reloaded.get_active_path() == PathName.BACKUP
        assert {f.match.in_port for f in reloaded.get_endpoint_flows(reloaded.get_active_path())} == {1, 3}

    def test_get_flows_follow_active_path(self, db):
        """After failover the endpoint flows come from the backup path."""
        circuit = Circuit(db, circuit_id=100)
        circuit.switch_active_path()

        ports = {f.match.in_port for f in circuit.get_flows() if f.dpid == 1}
        assert ports == {1, 3}

    def test_no_backup(self, db):
        """Circuits without a backup refuse to switch and change nothing."""
        circuit = Circuit(db, circuit_id=200)
        before = states(db, 200)

        result = circuit.switch_active_path()

        assert not result.success
        assert "no alternate path" in result.error
        assert circuit.error == result.error
        assert circuit.get_active_path() == PathName.PRIMARY
        assert states(db, 200) == before

    def test_failure_rolls_back(self, db, monkeypatch):
        """A failing step leaves persisted and in-memory state unchanged."""
        circuit = Circuit(db, circuit_id=100)
        before = states(db, 100)

        def fail(self, instantiation):
            raise TransactionError("promote failed")

        monkeypatch.setattr(MemoryTransaction, "promote", fail)
        result = circuit.switch_active_path()

        assert not result.success
        assert result.error == "promote failed"
        assert circuit.get_active_path() == PathName.PRIMARY
        assert states(db, 100) == before

    def test_lock_released_after_failure(self, db, monkeypatch):
        """A rolled back switch does not block the next one."""
        circuit = Circuit(db, circuit_id=100)

        def fail(self, instantiation):
            raise TransactionError("promote failed")

        with monkeypatch.context() as m:
            m.setattr(MemoryTransaction, "promote", fail)
            assert not circuit.switch_active_path().success

        assert circuit.switch_active_path().success

    def test_missing_available_target(self, db):
        """No available target instantiation is a transaction failure."""
        circuit = Circuit(db, circuit_id=100)
        with db.transaction(100) as txn:
            backup = txn.find_current(PathName.BACKUP, PathState.AVAILABLE)
            txn.end_instantiation(backup)

        result = circuit.switch_active_path()

        assert not result.success
        assert "Unable to find available instantiation of backup path." == result.error

    def test_deferred_commit(self, db):
        """With commit=False the switch lands only when the caller commits."""
        circuit = Circuit(db, circuit_id=100)
        txn = db.begin(100)

        result = circuit.switch_active_path(commit=False, transaction=txn)

        assert result.success
        assert not result.committed
        assert circuit.get_active_path() == PathName.PRIMARY
        assert states(db, 100)[0] == ("primary", "active", True)

        txn.commit()

        assert circuit.get_active_path() == PathName.BACKUP
        assert states(db, 100)[1] == ("backup", "active", True)

    def test_deferred_rollback(self, db):
        """Rolling back the caller's transaction keeps the primary path."""
        circuit = Circuit(db, circuit_id=100)
        txn = db.begin(100)
        circuit.switch_active_path(commit=False, transaction=txn)

        txn.rollback()

        assert circuit.get_active_path() == PathName.PRIMARY
        assert states(db, 100) == [
            ("primary", "active", True),
            ("backup", "available", True),
        ]

    def test_commit_in_supplied_transaction(self, db):
        """commit=True with a transaction commits that transaction."""
        circuit = Circuit(db, circuit_id=100)
        txn = db.begin(100)

        result = circuit.switch_active_path(transaction=txn)

        assert result.success
        assert result.committed
        assert txn.closed
        assert circuit.get_active_path() == PathName.BACKUP
        assert states(db, 100)[1] == ("backup", "active", True)

    def test_commit_false_requires_transaction(self, db):
        """commit=False without a transaction is a usage error."""
        circuit = Circuit(db, circuit_id=100)
        with pytest.raises(CircuitConfigError):
            circuit.switch_active_path(commit=False)

    def test_change_path_alias(self, db):
        """change_path is the same operation."""
        circuit = Circuit(db, circuit_id=100)
        assert circuit.change_path().active_path == PathName.BACKUP

    def test_concurrent_switches_serialize(self, db):
        """Two stale circuits racing to switch: exactly one wins."""
        circuits = [Circuit(db, circuit_id=100), Circuit(db, circuit_id=100)]
        results = []
        barrier = threading.Barrier(2)

        def switch(circuit):
            barrier.wait()
            results.append(circuit.switch_active_path())

        threads = [threading.Thread(target=switch, args=(c,)) for c in circuits]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(r.success for r in results) == [False, True]
        assert [s for s in states(db, 100) if s[2]] == [
            ("backup", "active", True),
            ("primary", "available", True),
        ]

    def test_result_to_dict(self, db):
        """Switch results serialize for reporting."""
        result = Circuit(db, circuit_id=100).switch_active_path()

        assert result.to_dict() == {
            "success": True,
            "circuit_id": 100,
            "previous_path": "primary",
            "active_path": "backup",
            "committed": True,
            "error": None,
        }


class TestPathController:
    """Tests for PathController used directly."""

    def test_change_path_on_details(self, db, parser, point_to_point):
        """The controller switches parsed details without a facade."""
        controller = PathController(db, user="noc")
        result = controller.change_path(parser.parse(point_to_point))

        assert result.success
        assert states(db, 100)[1] == ("backup", "active", True)
