"""
Data models for CanLabeler.

This module contains dataclasses for:
- Product, Brand: Catalog snapshots (read-only to the workflow)
- SequenceCounter: Next unused can id
- PrintRecord: Append-only print log entry
- LabelOrder: Operator input for one can
- PrintOutcome, WorkflowState: Print workflow results

Catalog and ledger snapshots are frozen so they can be shared between the
load threads and the request thread.
"""

from .catalog import Product, Brand, pad_product_code
from .ledger import SequenceCounter, PrintRecord
from .label_order import LabelOrder, add_years, parse_date
from .print_outcome import PrintOutcome, WorkflowState

__all__ = [
    # Catalog models
    "Product",
    "Brand",
    "pad_product_code",
    # Ledger models
    "SequenceCounter",
    "PrintRecord",
    # Order models
    "LabelOrder",
    "add_years",
    "parse_date",
    # Workflow models
    "PrintOutcome",
    "WorkflowState",
]
