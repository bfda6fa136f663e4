"""
Services layer for CanLabeler.

This module contains the business logic services:
- PrintWorkflow: Print/commit state machine (one label per can id)
- ScaleService: Background scale read thread
- reconcile_ledger: Repairs a counter that lags the print log

Thread Model:
    Main Thread (Flask)
    ├── PrintWorkflow (runs in the request thread, one print at a time)
    │   └── Load pool (3 short-lived threads per load)
    └── ScaleService thread (blocks on serial reads)
"""

from .print_workflow import PrintWorkflow
from .scale_service import ScaleService
from .reconciliation import reconcile_ledger, ReconcileResult

__all__ = [
    "PrintWorkflow",
    "ScaleService",
    "reconcile_ledger",
    "ReconcileResult",
]
