"""
Collaborator interfaces consumed by the print workflow.

The workflow never talks to Airtable, a socket or a serial port directly.
It is handed objects implementing these interfaces, which keeps the state
machine testable with in-memory doubles.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from models.catalog import Product, Brand
from models.ledger import SequenceCounter, PrintRecord


class CatalogReader(ABC):
    """Read-only access to the product and brand catalogs."""

    @abstractmethod
    def list_products(self) -> List[Product]:
        """Return the full current product set. Raises LoadError."""

    @abstractmethod
    def list_brands(self) -> List[Brand]:
        """Return the full current brand set. Raises LoadError."""


class SequenceLedger(ABC):
    """The durable "next unused can id"."""

    @abstractmethod
    def read_counter(self) -> SequenceCounter:
        """Fetch the current counter. Raises LedgerUnavailable."""

    @abstractmethod
    def advance_counter(self, counter_id: str, next_id: int) -> None:
        """
        Store a new next id.

        Must only be called after the print record for the previous value
        is durably stored. Raises LedgerUpdateFailed.
        """


class PrintRecordStore(ABC):
    """Append-only print log."""

    @abstractmethod
    def append_record(self, record: PrintRecord) -> str:
        """
        Persist a print record and return its record id.

        Raises:
            DuplicateCanId: If a record for record.can_id already exists
            PersistError: If the write fails
        """

    @abstractmethod
    def has_can_id(self, can_id: int) -> bool:
        """True if a record for `can_id` exists. Raises LoadError."""

    @abstractmethod
    def lot_exists(self, lot: str) -> bool:
        """True if any label was printed for `lot`. Raises LoadError."""


class LabelPrinter(ABC):
    """A label sink accepting a markup payload."""

    name = "printer"

    @abstractmethod
    def send(self, payload: str) -> None:
        """Submit a payload. Raises DeviceUnavailable."""
