"""
In-memory record store.

Implements the catalog, ledger and print log interfaces without any
external service. Used when RECORD_BACKEND=memory (bench setups, demos)
and throughout the test suite.

The store can be seeded from a JSON file with this shape:

    {
        "counter": {"id": "ctr1", "next_id": 1},
        "products": [{"id": "p1", "display_name": "...", "product_code": "14",
                      "rne": "...", "rnpa": "..."}],
        "brands": [{"id": "b1", "display_name": "...", "indicator": 7}]
    }
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Dict, List, Optional, Any

from .exceptions import DuplicateCanId
from .interfaces import CatalogReader, SequenceLedger, PrintRecordStore
from models.catalog import Product, Brand
from models.ledger import SequenceCounter, PrintRecord
from logging_config import get_logger


logger = get_logger(__name__)


class InMemoryRecordStore(CatalogReader, SequenceLedger, PrintRecordStore):
    """
    Thread-safe in-memory implementation of every record store interface.

    Attributes:
        records: Copy of the print log in insertion order
    """

    def __init__(
        self,
        products: Optional[List[Product]] = None,
        brands: Optional[List[Brand]] = None,
        counter: Optional[SequenceCounter] = None,
    ):
        self._products = list(products or [])
        self._brands = list(brands or [])
        self._counter = counter or SequenceCounter(id="counter", next_id=1)
        self._records: Dict[int, PrintRecord] = {}
        self._record_ids: Dict[int, str] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryRecordStore":
        counter_data = data.get("counter") or {}
        return cls(
            products=[Product.from_dict(p) for p in data.get("products", [])],
            brands=[Brand.from_dict(b) for b in data.get("brands", [])],
            counter=SequenceCounter(
                id=str(counter_data.get("id", "counter")),
                next_id=int(counter_data.get("next_id", 1)),
            ),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryRecordStore":
        """Load a seeded store from a JSON file."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        logger.info(f"Loaded in-memory store seed from {path}")
        return cls.from_dict(data)

    @property
    def records(self) -> List[PrintRecord]:
        with self._lock:
            return list(self._records.values())

    # ---------------------------------------------------------------------
    # Catalog
    # ---------------------------------------------------------------------

    def list_products(self) -> List[Product]:
        return list(self._products)

    def list_brands(self) -> List[Brand]:
        return list(self._brands)

    # ---------------------------------------------------------------------
    # Ledger
    # ---------------------------------------------------------------------

    def read_counter(self) -> SequenceCounter:
        with self._lock:
            return self._counter

    def advance_counter(self, counter_id: str, next_id: int) -> None:
        with self._lock:
            if counter_id != self._counter.id:
                raise KeyError(f"Unknown counter: {counter_id}")
            self._counter = SequenceCounter(id=counter_id, next_id=next_id)
        logger.debug(f"Counter {counter_id} advanced to {next_id}")

    # ---------------------------------------------------------------------
    # Print log
    # ---------------------------------------------------------------------

    def append_record(self, record: PrintRecord) -> str:
        with self._lock:
            if record.can_id in self._records:
                raise DuplicateCanId(record.can_id)
            record_id = f"rec{len(self._records) + 1:06d}"
            self._records[record.can_id] = record
            self._record_ids[record.can_id] = record_id
        return record_id

    def has_can_id(self, can_id: int) -> bool:
        with self._lock:
            return can_id in self._records

    def lot_exists(self, lot: str) -> bool:
        with self._lock:
            return any(r.lot == lot for r in self._records.values())
