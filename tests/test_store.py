"""Tests for the in-memory circuit database."""
import pytest
import yaml

from circuitflow import Circuit, CircuitConfigError, InMemoryCircuitDatabase, PathName
from circuitflow.circuit import PathState
from circuitflow.errors import TransactionError


class TestInMemoryCircuitDatabase:
    """Tests for InMemoryCircuitDatabase."""

    @pytest.fixture
    def seed_file(self, tmp_path, point_to_point):
        """YAML seed with one circuit already failed over to backup."""
        path = tmp_path / "circuits.yaml"
        path.write_text(yaml.safe_dump({
            "nodes": {"sw-a": 1, "sw-b": 2, "sw-c": 3},
            "links": {"link-ab": "down", "link-ac": "up", "link-cb": "up"},
            "circuits": [point_to_point],
            "path_instantiations": [
                {"path_instantiation_id": 10, "path_id": 1, "circuit_id": 100,
                 "path_type": "primary", "path_state": "active", "end_epoch": 5},
                {"path_instantiation_id": 11, "path_id": 2, "circuit_id": 100,
                 "path_type": "backup", "path_state": "active"},
                {"path_instantiation_id": 12, "path_id": 1, "circuit_id": 100,
                 "path_type": "primary", "path_state": "available"},
            ],
        }))
        return path

    def test_from_yaml(self, seed_file):
        """Seeded circuits load with their recorded active path."""
        db = InMemoryCircuitDatabase.from_yaml(seed_file)
        circuit = Circuit(db, circuit_id=100)

        assert db.get_node_dpid_hash() == {"sw-a": 1, "sw-b": 2, "sw-c": 3}
        assert circuit.get_active_path() == PathName.BACKUP
        assert circuit.get_path_status("primary") == 0

    def test_switch_after_yaml_seed(self, seed_file):
        """New instantiation ids continue after the seeded ones."""
        db = InMemoryCircuitDatabase.from_yaml(seed_file)
        Circuit(db, circuit_id=100).switch_active_path()
        ids = [inst.path_instantiation_id for inst in db.get_path_instantiations(100)]

        assert ids == [10, 11, 12, 13]

    def test_empty_yaml(self, tmp_path):
        """An empty seed file gives an empty database."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        db = InMemoryCircuitDatabase.from_yaml(path)

        assert db.get_current_links() == []
        with pytest.raises(CircuitConfigError):
            db.get_circuit_details(1)

    def test_details_carry_link_status(self, db):
        """Loaded links are annotated with their status."""
        db.set_link_status("link-ab", "down")
        details = db.get_circuit_details(100)

        assert details["links"][0]["status"] == "down"

    def test_live_link_status_overrides(self, db):
        """A live status map replaces the stored statuses."""
        details = db.get_circuit_details(100, link_status={"link-ab": "unknown"})

        assert details["links"][0]["status"] == "unknown"
        assert "status" not in details["backup_links"][0]

    def test_details_are_copies(self, db):
        """Mutating loaded details does not touch the database."""
        details = db.get_circuit_details(100)
        details["name"] = "changed"

        assert db.get_circuit_details(100)["name"] == "p2p"

    def test_add_circuit_requires_id(self, db):
        """Circuits need an id to be stored."""
        with pytest.raises(CircuitConfigError):
            db.add_circuit({"name": "nameless"})

    def test_primary_only_seed(self, db):
        """Circuits without backup links get only a primary instantiation."""
        rows = db.get_path_instantiations(200)

        assert [(r.path_type, r.path_state) for r in rows] == [
            (PathName.PRIMARY, PathState.ACTIVE),
        ]


class TestTransactions:
    """Tests for path transactions."""

    def test_context_manager_commits(self, db):
        """The transaction block commits on success."""
        with db.transaction(100) as txn:
            active = txn.find_current(PathName.PRIMARY, PathState.ACTIVE)
            txn.end_instantiation(active)

        assert not db.get_path_instantiations(100)[0].is_current
        assert txn.closed

    def test_context_manager_rolls_back(self, db):
        """An exception in the block discards the changes."""
        with pytest.raises(RuntimeError):
            with db.transaction(100) as txn:
                active = txn.find_current(PathName.PRIMARY, PathState.ACTIVE)
                txn.end_instantiation(active)
                raise RuntimeError("boom")

        assert db.get_path_instantiations(100)[0].is_current

    def test_closed_transaction_rejects_work(self, db):
        """A committed transaction can no longer be used."""
        txn = db.begin(100)
        txn.commit()

        with pytest.raises(TransactionError):
            txn.find_current(PathName.PRIMARY, PathState.ACTIVE)
        with pytest.raises(TransactionError):
            txn.commit()

    def test_rollback_twice_is_harmless(self, db):
        """Rolling back a closed transaction does nothing."""
        txn = db.begin(100)
        txn.rollback()
        txn.rollback()

        db.begin(100).rollback()

    def test_promote_ended_instantiation(self, db):
        """Ended instantiations cannot be promoted."""
        txn = db.begin(100)
        try:
            backup = txn.find_current(PathName.BACKUP, PathState.AVAILABLE)
            ended = txn.end_instantiation(backup)
            with pytest.raises(TransactionError):
                txn.promote(ended)
        finally:
            txn.rollback()

    def test_commit_hooks(self, db):
        """on_commit callbacks run on commit only."""
        calls = []

        txn = db.begin(100)
        txn.on_commit(lambda: calls.append("first"))
        txn.rollback()

        txn = db.begin(100)
        txn.on_commit(lambda: calls.append("second"))
        txn.commit()

        assert calls == ["second"]

    def test_transactions_isolated_per_circuit(self, db):
        """A transaction on one circuit does not block another."""
        txn = db.begin(100)
        other = db.begin(200)
        other.commit()
        txn.commit()
