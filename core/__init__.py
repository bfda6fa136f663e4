"""
Core module for CanLabeler.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- code21: 21-digit can code encoder/decoder
- interfaces: Collaborator interfaces used by the print workflow
- airtable_store / memory_store: Record store implementations
- scale: Serial scale reader
- printers: Label printer sinks
"""

from .exceptions import (
    CanLabelerError,
    LoadError,
    LedgerUnavailable,
    ValidationError,
    EncodingError,
    PersistError,
    DuplicateCanId,
    LedgerUpdateFailed,
    DeviceUnavailable,
    ConcurrentPrintRejected,
    WorkflowStateError,
)
from .code21 import encode_code21, decode_code21, calculate_check_digit, is_valid_code21
from .interfaces import CatalogReader, SequenceLedger, PrintRecordStore, LabelPrinter

__all__ = [
    "CanLabelerError",
    "LoadError",
    "LedgerUnavailable",
    "ValidationError",
    "EncodingError",
    "PersistError",
    "DuplicateCanId",
    "LedgerUpdateFailed",
    "DeviceUnavailable",
    "ConcurrentPrintRejected",
    "WorkflowStateError",
    "encode_code21",
    "decode_code21",
    "calculate_check_digit",
    "is_valid_code21",
    "CatalogReader",
    "SequenceLedger",
    "PrintRecordStore",
    "LabelPrinter",
]
