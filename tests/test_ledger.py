"""
Tests for the append-only proof ledger.

Tests:
- Append and read back in sequence order
- Sequence compare-and-set
- Malformed and out-of-sequence lines
- Lock file timeout
- Proof ID validation
"""

import json

import pytest

from proofstate.config import EngineConfig
from proofstate.errors import (
    ConcurrentModificationError,
    InvalidInputError,
    LedgerInconsistentError,
    LedgerLockTimeoutError,
)
from proofstate.ledger import (
    EventType,
    LedgerEvent,
    LedgerRecord,
    ProofLedger,
    challenge_withdrawn,
    event_types,
    nodes_claimed,
)


@pytest.fixture
def ledger(config):
    return ProofLedger("proof-a", config=config)


def _event(n=1):
    return nodes_claimed([f"1.{n}"], f"agent-{n}")


class TestAppend:
    """Tests for writing records."""

    def test_empty(self, ledger):
        assert not ledger.exists()
        assert ledger.read_all() == []
        assert ledger.latest_seq() == 0

    def test_append_assigns_sequence(self, ledger):
        first, second = _event(1), _event(2)
        assert ledger.append(first) == 1
        assert ledger.append(second) == 2
        assert (first.seq, second.seq) == (1, 2)
        assert ledger.latest_seq() == 2
        assert not ledger.lock_path.exists()

    def test_round_trip(self, ledger):
        ledger.append(_event(1))
        ledger.append(challenge_withdrawn("ch-1"))
        events = ledger.read_all()
        assert event_types(events) == [EventType.NODES_CLAIMED, EventType.CHALLENGE_WITHDRAWN]
        assert events[0].payload == {"node_ids": ["1.1"], "agent": "agent-1"}
        assert [e.seq for e in events] == [1, 2]
        assert events[0].timestamp.tzinfo is not None

    def test_one_json_record_per_line(self, ledger):
        ledger.append(_event(1))
        lines = ledger.ledger_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        data = json.loads(lines[0])
        assert data["seq"] == 1
        assert data["event_type"] == "nodes_claimed"

    def test_read_since(self, ledger):
        for n in range(1, 4):
            ledger.append(_event(n))
        assert [e.seq for e in ledger.read_since(1)] == [2, 3]
        assert ledger.read_since(3) == []

    def test_base_dir_override(self, tmp_path, config):
        ledger = ProofLedger("proof-b", config=config, base_dir=tmp_path / "elsewhere")
        ledger.append(_event())
        assert (tmp_path / "elsewhere" / "proof-b" / "ledger.jsonl").exists()


class TestCompareAndSet:
    """Tests for append_if_sequence."""

    def test_batch(self, ledger):
        events = [_event(1), _event(2), _event(3)]
        assert ledger.append_if_sequence(events, expected_seq=0) == [1, 2, 3]
        assert [e.seq for e in events] == [1, 2, 3]

    def test_stale_sequence(self, ledger):
        ledger.append(_event(1))
        with pytest.raises(ConcurrentModificationError) as exc:
            ledger.append_if_sequence([_event(2)], expected_seq=0)
        assert exc.value.expected_seq == 0
        assert exc.value.actual_seq == 1
        assert ledger.latest_seq() == 1

    def test_empty_batch_writes_nothing(self, ledger):
        assert ledger.append_if_sequence([], expected_seq=5) == []
        assert not ledger.exists()


class TestCorruption:
    """Tests for reading damaged files."""

    def _write(self, ledger, lines):
        ledger.proof_dir.mkdir(parents=True, exist_ok=True)
        ledger.ledger_path.write_text("".join(lines), encoding="utf-8")

    def _record(self, seq):
        record = LedgerRecord.from_event(_event(seq), seq)
        return json.dumps(record.model_dump(mode="json")) + "\n"

    def test_malformed_line(self, ledger):
        self._write(ledger, [self._record(1), "{not json\n"])
        with pytest.raises(LedgerInconsistentError) as exc:
            ledger.read_all()
        assert exc.value.line == 2
        assert exc.value.path == str(ledger.ledger_path)

    def test_unknown_event_type(self, ledger):
        line = json.dumps({"seq": 1, "event_type": "node_exploded",
                           "timestamp": "2026-01-01T00:00:00+00:00", "payload": {}})
        self._write(ledger, [line + "\n"])
        with pytest.raises(LedgerInconsistentError):
            ledger.read_all()

    def test_sequence_gap(self, ledger):
        self._write(ledger, [self._record(1), self._record(3)])
        with pytest.raises(LedgerInconsistentError) as exc:
            ledger.latest_seq()
        assert exc.value.line == 2

    def test_blank_lines_ignored(self, ledger):
        self._write(ledger, [self._record(1), "\n", self._record(2)])
        assert ledger.latest_seq() == 2

    def test_unterminated_tail(self, ledger):
        self._write(ledger, [self._record(1), self._record(2).rstrip("\n")])
        assert ledger.latest_seq() == 1
        with pytest.raises(LedgerInconsistentError):
            ledger.append(_event(3))


class TestLocking:
    """Tests for the writer lock file."""

    def test_held_lock_times_out(self, tmp_path):
        config = EngineConfig(
            ledger_base_dir=str(tmp_path),
            ledger_lock_timeout_seconds=0.05,
            ledger_lock_poll_seconds=0.01,
        )
        ledger = ProofLedger("locked", config=config)
        ledger.proof_dir.mkdir(parents=True)
        ledger.lock_path.write_text("12345")
        with pytest.raises(LedgerLockTimeoutError):
            ledger.append(_event())
        assert not ledger.exists()
        assert ledger.lock_path.exists()

    def test_lock_released_after_error(self, ledger):
        ledger.append(_event(1))
        with pytest.raises(ConcurrentModificationError):
            ledger.append_if_sequence([_event(2)], expected_seq=7)
        assert not ledger.lock_path.exists()
        assert ledger.append(_event(2)) == 2


class TestProofId:
    """Tests for proof ID validation."""

    @pytest.mark.parametrize("proof_id", ["", "  ", "a/b", "a\\b", ".", ".."])
    def test_invalid(self, config, proof_id):
        with pytest.raises(InvalidInputError):
            ProofLedger(proof_id, config=config)

    def test_paths(self, ledger, config):
        assert ledger.proof_dir.name == "proof-a"
        assert ledger.ledger_path.name == "ledger.jsonl"
        assert str(ledger.base_dir) == config.ledger_base_dir


def test_event_dict_round_trip():
    event = LedgerEvent(EventType.CHALLENGE_WITHDRAWN, {"challenge_id": "ch-1"}, seq=4)
    restored = LedgerEvent.from_dict(event.to_dict())
    assert restored.event_type == EventType.CHALLENGE_WITHDRAWN
    assert restored.payload == {"challenge_id": "ch-1"}
    assert restored.seq == 4
