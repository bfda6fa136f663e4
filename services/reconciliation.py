"""
Ledger reconciliation.

If the counter update fails after a print record was stored, the ledger
lags the print log: its next_id points at an id that already has a record.
reconcile_ledger() walks the counter forward past every recorded id and
stores the result. It only ever moves the counter forward, and running it
on a consistent ledger changes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Any, List

from core.exceptions import LedgerUpdateFailed
from core.interfaces import SequenceLedger, PrintRecordStore
from logging_config import get_logger


logger = get_logger(__name__)

# Stop walking after this many consecutive recorded ids; more than a
# handful means something other than a missed advance is wrong
MAX_RECOVERED_IDS = 1000


@dataclass
class ReconcileResult:
    """What reconcile_ledger() found and did."""

    counter_id: str
    previous_next_id: int
    next_id: int
    recovered_can_ids: List[int]

    @property
    def changed(self) -> bool:
        return self.next_id != self.previous_next_id

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["changed"] = self.changed
        return data


def reconcile_ledger(ledger: SequenceLedger, records: PrintRecordStore) -> ReconcileResult:
    """
    Advance the counter past ids that already have print records.

    Args:
        ledger: Sequence ledger to repair
        records: Print record store to check ids against

    Returns:
        ReconcileResult describing the change (if any)

    Raises:
        LedgerUnavailable: If the counter cannot be read
        LoadError: If the print log cannot be queried
        LedgerUpdateFailed: If the repaired counter cannot be stored, or
            more than MAX_RECOVERED_IDS ids are recorded ahead of the counter
    """
    counter = ledger.read_counter()
    next_id = counter.next_id
    recovered: List[int] = []

    while records.has_can_id(next_id):
        recovered.append(next_id)
        next_id += 1
        if len(recovered) > MAX_RECOVERED_IDS:
            raise LedgerUpdateFailed(
                counter.next_id,
                counter_id=counter.id,
                reason=f"more than {MAX_RECOVERED_IDS} recorded ids ahead of the counter",
            )

    result = ReconcileResult(
        counter_id=counter.id,
        previous_next_id=counter.next_id,
        next_id=next_id,
        recovered_can_ids=recovered,
    )

    if not result.changed:
        logger.info(f"Ledger {counter.id} is consistent at {counter.next_id}")
        return result

    logger.warning(
        f"Ledger {counter.id} lagged the print log by {len(recovered)} id(s) "
        f"({recovered[0]}..{recovered[-1]}); advancing to {next_id}"
    )
    try:
        ledger.advance_counter(counter.id, next_id)
    except LedgerUpdateFailed:
        raise
    except Exception as e:
        raise LedgerUpdateFailed(next_id - 1, counter_id=counter.id, reason=str(e)) from e

    return result
