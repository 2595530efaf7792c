"""
Proof Ledger.

Append-only JSONL storage for proof events.
One directory per proof: {base_dir}/{proof_id}/ledger.jsonl

Key properties:
- Append-only: existing records are never modified
- Human-readable: plain JSONL, one LedgerRecord per line
- Sequenced: records carry seq 1, 2, 3, ... with no gaps
- Multi-writer safe: writers hold an exclusive lock file and use
  compare-and-set on the sequence number (append_if_sequence)
"""

import json
import logging
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from pydantic import ValidationError

from ..config import EngineConfig, get_engine_config
from ..errors import (
    ConcurrentModificationError,
    InvalidInputError,
    LedgerInconsistentError,
    LedgerLockTimeoutError,
)
from .events import LedgerEvent
from .schemas import LedgerRecord

logger = logging.getLogger(__name__)

LEDGER_FILENAME = "ledger.jsonl"
LOCK_FILENAME = "ledger.lock"


class ProofLedger:
    """
    Append-only event ledger for one proof.

    Usage:
        ledger = ProofLedger(proof_id="fermat-small")

        seq = ledger.latest_seq()
        ledger.append_if_sequence([event], expected_seq=seq)

        events = ledger.read_all()
    """

    def __init__(
        self,
        proof_id: str,
        config: Optional[EngineConfig] = None,
        base_dir: Optional[Path] = None,
    ):
        """
        Initialize the ledger for a proof.

        Args:
            proof_id: Proof identifier (used as a directory name)
            config: Optional EngineConfig
            base_dir: Optional base directory override
        """
        if not proof_id or not proof_id.strip():
            raise InvalidInputError("proof_id must not be empty")
        if "/" in proof_id or "\\" in proof_id or proof_id in (".", ".."):
            raise InvalidInputError(f"proof_id {proof_id!r} is not a valid directory name")

        self.proof_id = proof_id
        self.config = config or get_engine_config()

        if base_dir:
            self.base_dir = Path(base_dir)
        else:
            self.base_dir = Path(self.config.ledger_base_dir)

        self._lock = threading.Lock()

    @property
    def proof_dir(self) -> Path:
        return self.base_dir / self.proof_id

    @property
    def ledger_path(self) -> Path:
        """Get path to the proof's ledger file."""
        return self.proof_dir / LEDGER_FILENAME

    @property
    def lock_path(self) -> Path:
        return self.proof_dir / LOCK_FILENAME

    def exists(self) -> bool:
        return self.ledger_path.exists()

    # =========================================================================
    # Reading
    # =========================================================================

    def _iter_records(self, strict: bool = False) -> Iterator[LedgerRecord]:
        """
        Yield validated records in order.

        A last line without its newline is a write still in progress (or one
        torn by a crash). Readers skip it; strict callers (writers holding the
        lock) treat it as corruption.
        """
        if not self.ledger_path.exists():
            return
        expected = 1
        with open(self.ledger_path, "r", encoding="utf-8") as f:
            for line_no, raw in enumerate(f, start=1):
                if not raw.endswith("\n"):
                    if strict:
                        raise LedgerInconsistentError(
                            "unterminated last line", path=self.ledger_path, line=line_no
                        )
                    logger.debug(f"[LEDGER] Skipping unterminated line {line_no} of {self.ledger_path}")
                    break
                line = raw.strip()
                if not line:
                    continue
                try:
                    record = LedgerRecord.model_validate_json(line)
                except ValidationError as e:
                    raise LedgerInconsistentError(
                        f"malformed record: {e.errors()[0].get('msg', 'invalid')}",
                        path=self.ledger_path,
                        line=line_no,
                    ) from e
                if record.seq != expected:
                    raise LedgerInconsistentError(
                        f"expected sequence {expected}, found {record.seq}",
                        path=self.ledger_path,
                        line=line_no,
                    )
                expected += 1
                yield record

    def read_all(self) -> List[LedgerEvent]:
        """
        Read all events in sequence order.

        Raises:
            LedgerInconsistentError: a line is malformed or out of sequence
        """
        return [record.to_event() for record in self._iter_records()]

    def read_since(self, seq: int) -> List[LedgerEvent]:
        """Events with sequence number greater than seq."""
        return [record.to_event() for record in self._iter_records() if record.seq > seq]

    def latest_seq(self, strict: bool = False) -> int:
        """Sequence number of the last record (0 for an empty ledger)."""
        latest = 0
        for record in self._iter_records(strict):
            latest = record.seq
        return latest

    # =========================================================================
    # Writing
    # =========================================================================

    @contextmanager
    def _write_lock(self) -> Iterator[None]:
        """
        Exclusive writer lock: an in-process mutex plus a lock file created
        with O_EXCL, so that other processes are excluded too.
        """
        timeout = self.config.ledger_lock_timeout_seconds
        poll = self.config.ledger_lock_poll_seconds
        if not self._lock.acquire(timeout=timeout):
            raise LedgerLockTimeoutError(self.lock_path, timeout)
        try:
            self.proof_dir.mkdir(parents=True, exist_ok=True)
            deadline = time.monotonic() + timeout
            while True:
                try:
                    fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                    break
                except FileExistsError:
                    if time.monotonic() >= deadline:
                        logger.warning(f"[LEDGER] Lock timeout on {self.lock_path}")
                        raise LedgerLockTimeoutError(self.lock_path, timeout) from None
                    time.sleep(poll)
            try:
                os.write(fd, str(os.getpid()).encode("ascii"))
            finally:
                os.close(fd)
            try:
                yield
            finally:
                os.remove(self.lock_path)
        finally:
            self._lock.release()

    def _write_records(self, records: Sequence[LedgerRecord]) -> None:
        lines = "".join(
            json.dumps(record.model_dump(mode="json"), ensure_ascii=False) + "\n"
            for record in records
        )
        with open(self.ledger_path, "a", encoding="utf-8") as f:
            f.write(lines)
            f.flush()
            os.fsync(f.fileno())

    def append_if_sequence(self, events: Sequence[LedgerEvent], expected_seq: int) -> List[int]:
        """
        Append events only if the ledger is still at expected_seq.

        Args:
            events: Events to append, in order
            expected_seq: Sequence number the caller's state was built from

        Returns:
            Sequence numbers assigned to the events

        Raises:
            ConcurrentModificationError: another writer appended first
            LedgerLockTimeoutError: the lock file could not be acquired
        """
        if not events:
            return []
        with self._write_lock():
            actual = self.latest_seq(strict=True)
            if actual != expected_seq:
                logger.info(
                    f"[LEDGER] CAS failed for {self.proof_id}: expected {expected_seq}, found {actual}"
                )
                raise ConcurrentModificationError(expected_seq, actual, "append")
            records = [
                LedgerRecord.from_event(event, actual + offset)
                for offset, event in enumerate(events, start=1)
            ]
            self._write_records(records)
            for event, record in zip(events, records):
                event.seq = record.seq
            logger.debug(
                f"[LEDGER] Appended {len(records)} event(s) to {self.proof_id} "
                f"(seq {records[0].seq}-{records[-1].seq})"
            )
            return [record.seq for record in records]

    def append(self, event: LedgerEvent) -> int:
        """Append one event at the end of the ledger, whatever its length."""
        with self._write_lock():
            seq = self.latest_seq(strict=True) + 1
            record = LedgerRecord.from_event(event, seq)
            self._write_records([record])
            event.seq = seq
            logger.debug(f"[LEDGER] Appended {event.event_type.value} to {self.proof_id} (seq {seq})")
            return seq
