"""
Ledger data models.

SequenceCounter is the durable "next unused can id". PrintRecord is the
append-only print log entry written once per successful print. Every
consumed counter value maps to exactly one PrintRecord.can_id.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Any


@dataclass(frozen=True)
class SequenceCounter:
    """
    Snapshot of the sequence ledger row.

    next_id never decreases over the ledger's lifetime and is advanced only
    after the print record referencing the previous value is stored.
    """

    id: str
    """Ledger row identity."""

    next_id: int
    """Next unconsumed can id."""

    def advanced(self) -> "SequenceCounter":
        """Return the counter after consuming next_id."""
        return SequenceCounter(id=self.id, next_id=self.next_id + 1)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PrintRecord:
    """
    One printed label, as stored in the print log.

    Created exactly once per successful print; never mutated or deleted.
    """

    can_id: int
    """The consumed sequence value."""

    lot: str
    """5-digit lot, kept as text so leading zeros survive."""

    product_id: str
    brand_id: str
    weight_grams: int

    rne: str
    """First regulatory reference, copied from the product at print time."""

    rnpa: str
    """Second regulatory reference, copied from the product at print time."""

    code21: str
    """The 21-digit code printed on the label."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses and the in-memory store."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrintRecord":
        return cls(
            can_id=int(data["can_id"]),
            lot=str(data.get("lot", "")),
            product_id=str(data.get("product_id", "")),
            brand_id=str(data.get("brand_id", "")),
            weight_grams=int(data.get("weight_grams", 0)),
            rne=str(data.get("rne", "")),
            rnpa=str(data.get("rnpa", "")),
            code21=str(data.get("code21", "")),
        )
