"""
Print workflow - the can labeling state machine.

This service turns one operator "print" into exactly one consumed can id,
one print record and one label, in a strict order:

    persist record -> advance counter -> dispatch label

States:
    IDLE -> LOADING -> READY -> VALIDATING -> ENCODING -> PERSISTING
         -> ADVANCING -> DISPATCHING -> COMPLETED

    VALIDATING -> ABORTED          bad input, no I/O performed
    LOADING    -> FAULTED          LoadError (reload to retry)
    ENCODING   -> FAULTED          EncodingError (nothing written)
    PERSISTING -> FAULTED          PersistError (no id consumed)
    ADVANCING  -> FAULTED          LedgerUpdateFailed (record exists, ledger lags)
    DISPATCHING-> FAULTED          DeviceUnavailable (record and ledger consistent)

Why this order:
    The counter is advanced only after the record referencing the id is
    stored. A crash between the two leaves an id that is recorded but not
    yet counted - found and fixed by reconcile_ledger() - instead of an id
    that is counted but unrecorded, or worse, handed out twice.

Reentrancy:
    Only one print can be in flight. A second print_label() call while the
    first is between VALIDATING and a settled state raises
    ConcurrentPrintRejected and touches nothing.

Usage:
    workflow = PrintWorkflow(store, store, store, printer)
    workflow.load()

    outcome = workflow.print_label(order)
    if outcome.succeeded:
        workflow.continue_same_article()   # or workflow.reset(); workflow.load()
"""

from __future__ import annotations

import re
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from core.code21 import encode_code21, MAX_WEIGHT_GRAMS
from core.exceptions import (
    CanLabelerError,
    ConcurrentPrintRejected,
    DeviceUnavailable,
    EncodingError,
    LedgerUpdateFailed,
    LoadError,
    PersistError,
    ValidationError,
    WorkflowStateError,
)
from core.interfaces import CatalogReader, SequenceLedger, PrintRecordStore, LabelPrinter
from models.catalog import Product, Brand
from models.label_order import LabelOrder, DEFAULT_SHELF_LIFE_YEARS
from models.ledger import SequenceCounter, PrintRecord
from models.print_outcome import PrintOutcome, WorkflowState
from modules.label_markup import render_label
from logging_config import get_logger, get_print_logger


# Module logger
logger = get_logger(__name__)

_LOT_RE = re.compile(r"[0-9]{5}")
_WEIGHT_RE = re.compile(r"[0-9]+")


class PrintWorkflow:
    """
    Single-station print workflow.

    The workflow owns the loaded catalog snapshots, the in-memory copy of
    the counter and the operator's current draft. Collaborators are
    injected, so the same class runs against Airtable in production and
    the in-memory store in tests.

    Attributes:
        state: Current WorkflowState
        counter: Counter snapshot (None before load)
        products: Loaded products in catalog order
        brands: Loaded brands in catalog order
        draft: Copy of the operator's current order
        last_outcome: Outcome of the most recent print attempt
    """

    def __init__(
        self,
        catalog: CatalogReader,
        ledger: SequenceLedger,
        records: PrintRecordStore,
        printer: LabelPrinter,
        shelf_life_years: int = DEFAULT_SHELF_LIFE_YEARS,
        clock: Callable[[], date] = date.today,
        load_timeout_seconds: float = 30.0,
    ):
        """
        Initialize the workflow in IDLE.

        Args:
            catalog: Product and brand source
            ledger: Sequence ledger
            records: Print record store
            printer: Label sink
            shelf_life_years: Default expiry offset from manufacture date
            clock: Returns today's date (injectable for tests)
            load_timeout_seconds: Upper bound on the initial fetch
        """
        self._catalog = catalog
        self._ledger = ledger
        self._records = records
        self._printer = printer
        self._shelf_life_years = shelf_life_years
        self._clock = clock
        self._load_timeout = load_timeout_seconds

        self._lock = threading.Lock()
        self._state = WorkflowState.IDLE
        self._counter: Optional[SequenceCounter] = None
        self._products: Dict[str, Product] = {}
        self._brands: Dict[str, Brand] = {}
        self._draft = LabelOrder()
        self._last_outcome: Optional[PrintOutcome] = None
        self._load_error: Optional[LoadError] = None

    # =========================================================================
    # READ-ONLY ACCESSORS
    # =========================================================================

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def counter(self) -> Optional[SequenceCounter]:
        return self._counter

    @property
    def products(self) -> List[Product]:
        return list(self._products.values())

    @property
    def brands(self) -> List[Brand]:
        return list(self._brands.values())

    @property
    def draft(self) -> LabelOrder:
        return replace(self._draft)

    @property
    def last_outcome(self) -> Optional[PrintOutcome]:
        return self._last_outcome

    @property
    def load_error(self) -> Optional[LoadError]:
        return self._load_error

    # =========================================================================
    # LOADING
    # =========================================================================

    def load(self) -> None:
        """
        Fetch counter, products and brands concurrently and become READY.

        Allowed from IDLE, or from FAULTED after a failed load.

        Raises:
            LoadError: If any fetch fails (workflow is left FAULTED)
            WorkflowStateError: If called from any other state
        """
        with self._lock:
            retry_after_load_fault = (
                self._state == WorkflowState.FAULTED and self._load_error is not None
            )
            if self._state != WorkflowState.IDLE and not retry_after_load_fault:
                raise WorkflowStateError("load", self._state.value)
            self._transition(WorkflowState.LOADING)
            self._load_error = None

        today = self._clock()

        try:
            counter, products, brands = self._fetch_all()
        except LoadError as e:
            logger.error(f"Load failed: {e}")
            with self._lock:
                self._load_error = e
                self._transition(WorkflowState.FAULTED)
            raise

        with self._lock:
            self._counter = counter
            self._products = {p.id: p for p in products}
            self._brands = {b.id: b for b in brands}
            self._draft = LabelOrder.seeded(today, self._shelf_life_years)
            self._transition(WorkflowState.READY)

        logger.info(
            f"Loaded {len(products)} products, {len(brands)} brands, next can id {counter.next_id}"
        )

    def _fetch_all(self) -> Tuple[SequenceCounter, List[Product], List[Brand]]:
        """Run the three read-only fetches in parallel."""
        pool = ThreadPoolExecutor(max_workers=3, thread_name_prefix="Load")
        try:
            futures = {
                "ledger": pool.submit(self._ledger.read_counter),
                "products": pool.submit(self._catalog.list_products),
                "brands": pool.submit(self._catalog.list_brands),
            }
            _, not_done = wait(futures.values(), timeout=self._load_timeout)
            if not_done:
                raise LoadError(
                    f"Loading timed out after {self._load_timeout:.0f}s",
                    source=", ".join(name for name, f in futures.items() if f in not_done),
                )

            results = {}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except LoadError:
                    raise
                except Exception as e:
                    raise LoadError(f"Could not load {name}: {e}", source=name) from e
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        return results["ledger"], results["products"], results["brands"]

    # =========================================================================
    # PRINTING
    # =========================================================================

    def print_label(self, order: LabelOrder) -> PrintOutcome:
        """
        Validate, encode, persist, advance and dispatch one label.

        Args:
            order: Operator input for this can

        Returns:
            PrintOutcome in COMPLETED, ABORTED or FAULTED state

        Raises:
            ConcurrentPrintRejected: If a print is already in flight
            WorkflowStateError: If the workflow is not READY (or ABORTED)
        """
        with self._lock:
            if self._state.in_flight:
                logger.warning(f"Print rejected: another print is {self._state.value}")
                raise ConcurrentPrintRejected(self._state.value)
            if self._state not in (WorkflowState.READY, WorkflowState.ABORTED):
                raise WorkflowStateError("print", self._state.value)

            order = replace(order)
            self._draft = replace(order)
            counter = self._counter
            self._transition(WorkflowState.VALIDATING)

        try:
            outcome = self._run_print(order, counter)
        except BaseException:
            # Never leave the guard held by an unexpected failure
            with self._lock:
                self._transition(WorkflowState.FAULTED)
                # The previous attempt no longer describes this fault
                self._last_outcome = None
            raise

        with self._lock:
            self._last_outcome = outcome
            self._transition(outcome.state)
        return outcome

    def _run_print(self, order: LabelOrder, counter: SequenceCounter) -> PrintOutcome:
        # ---------------------------------------------------------------------
        # VALIDATING - no I/O
        # ---------------------------------------------------------------------
        try:
            product, brand, weight = self._validate(order)
        except ValidationError as e:
            logger.info(f"Print aborted: {e.message}")
            return PrintOutcome.create_aborted(e)

        can_id = counter.next_id
        print_logger = get_print_logger(can_id)

        # ---------------------------------------------------------------------
        # ENCODING
        # ---------------------------------------------------------------------
        self._set_state(WorkflowState.ENCODING)
        try:
            code21 = encode_code21(
                can_id=can_id,
                lot=order.lot,
                indicator=brand.indicator,
                product_code=product.product_code,
                weight_grams=weight,
            )
        except EncodingError as e:
            print_logger.error(f"Encoding failed: {e}")
            return PrintOutcome.create_faulted(WorkflowState.ENCODING, e, can_id=can_id)

        record = PrintRecord(
            can_id=can_id,
            lot=order.lot,
            product_id=product.id,
            brand_id=brand.id,
            weight_grams=weight,
            rne=product.rne,
            rnpa=product.rnpa,
            code21=code21,
        )

        # ---------------------------------------------------------------------
        # PERSISTING - failure here consumes nothing
        # ---------------------------------------------------------------------
        self._set_state(WorkflowState.PERSISTING)
        try:
            record_id = self._records.append_record(record)
        except PersistError as e:
            print_logger.error(f"Print record not stored: {e}")
            return PrintOutcome.create_faulted(WorkflowState.PERSISTING, e, can_id=can_id, code21=code21)
        except Exception as e:
            error = PersistError(f"Could not store print record: {e}", can_id=can_id)
            print_logger.error(f"Print record not stored: {e}")
            return PrintOutcome.create_faulted(WorkflowState.PERSISTING, error, can_id=can_id, code21=code21)

        print_logger.info(f"Print record {record_id} stored (code {code21})")

        # ---------------------------------------------------------------------
        # ADVANCING - only after the record is durable; never retried here
        # ---------------------------------------------------------------------
        self._set_state(WorkflowState.ADVANCING)
        try:
            self._ledger.advance_counter(counter.id, can_id + 1)
        except Exception as e:
            error = e if isinstance(e, LedgerUpdateFailed) else LedgerUpdateFailed(
                can_id, counter_id=counter.id, reason=str(e)
            )
            print_logger.critical(
                f"Can {can_id} recorded as {record_id} but the ledger was not advanced - "
                f"reconcile before printing again: {e}"
            )
            return PrintOutcome.create_faulted(
                WorkflowState.ADVANCING, error, can_id=can_id, code21=code21, record_id=record_id
            )

        with self._lock:
            self._counter = counter.advanced()
        print_logger.info(f"Ledger advanced to {can_id + 1}")

        # ---------------------------------------------------------------------
        # DISPATCHING
        # ---------------------------------------------------------------------
        payload = render_label(
            product=product,
            lot=order.lot,
            code21=code21,
            manufacture_date=order.manufacture_date,
            expiry_date=order.expiry_date,
        )
        self._set_state(WorkflowState.DISPATCHING)
        error = self._dispatch(payload, print_logger)
        if error is not None:
            return PrintOutcome.create_faulted(
                WorkflowState.DISPATCHING, error,
                can_id=can_id, code21=code21, record_id=record_id, payload=payload,
            )

        print_logger.info("Label dispatched")
        return PrintOutcome.create_completed(can_id, code21, record_id, payload)

    def _dispatch(self, payload: str, print_logger) -> Optional[CanLabelerError]:
        """Send the payload; returns the error instead of raising it."""
        try:
            self._printer.send(payload)
        except DeviceUnavailable as e:
            print_logger.error(f"Label not dispatched: {e}")
            return e
        except Exception as e:
            print_logger.error(f"Label not dispatched: {e}")
            return DeviceUnavailable(self._printer.name, f"Label printer failed: {e}")
        return None

    def _validate(self, order: LabelOrder) -> Tuple[Product, Brand, int]:
        """
        Check operator input against the loaded catalogs.

        Returns:
            (product, brand, weight in grams)

        Raises:
            ValidationError: On the first problem found
        """
        if not order.product_id:
            raise ValidationError("Select a product", field="product_id")
        product = self._products.get(order.product_id)
        if product is None:
            raise ValidationError(f"Unknown product: {order.product_id}", field="product_id")

        if not order.brand_id:
            raise ValidationError("Select a brand", field="brand_id")
        brand = self._brands.get(order.brand_id)
        if brand is None:
            raise ValidationError(f"Unknown brand: {order.brand_id}", field="brand_id")

        if not isinstance(order.lot, str) or not _LOT_RE.fullmatch(order.lot):
            raise ValidationError("Lot must be exactly 5 digits", field="lot")

        weight = _coerce_weight(order.weight_grams)
        if weight > MAX_WEIGHT_GRAMS:
            raise ValidationError(f"Weight cannot exceed {MAX_WEIGHT_GRAMS} g", field="weight_grams")

        if order.manufacture_date is None:
            raise ValidationError("Manufacture date is required", field="manufacture_date")
        if order.expiry_date is None:
            raise ValidationError("Expiry date is required", field="expiry_date")
        if order.expiry_date < order.manufacture_date:
            raise ValidationError("Expiry date is before the manufacture date", field="expiry_date")

        return product, brand, weight

    # =========================================================================
    # AFTER A PRINT
    # =========================================================================

    def continue_same_article(self) -> LabelOrder:
        """
        Same article, different can: back to READY with the weight zeroed.

        Allowed after a completed print, or after a dispatch fault (the
        record and counter are consistent then; use redispatch() to get
        the missing label).

        Returns:
            The new draft
        """
        with self._lock:
            if not self._can_continue():
                raise WorkflowStateError("continue with the same article", self._state.value)
            self._draft = self._draft.for_next_can()
            self._transition(WorkflowState.READY)
            return replace(self._draft)

    def reset(self) -> None:
        """Drop all loaded state and return to IDLE. Call load() next."""
        with self._lock:
            if self._state.in_flight or self._state == WorkflowState.LOADING:
                raise WorkflowStateError("reset", self._state.value)
            self._counter = None
            self._products = {}
            self._brands = {}
            self._draft = LabelOrder()
            self._load_error = None
            self._transition(WorkflowState.IDLE)

    def redispatch(self) -> PrintOutcome:
        """
        Send the last label again without consuming a new can id.

        Allowed after a completed print or a dispatch fault.

        Raises:
            ConcurrentPrintRejected: If a print is in flight
            WorkflowStateError: If there is no label to re-send
        """
        with self._lock:
            if self._state.in_flight:
                raise ConcurrentPrintRejected(self._state.value)
            previous = self._last_outcome
            if not self._can_continue() or previous is None or not previous.payload:
                raise WorkflowStateError("reprint", self._state.value)
            self._transition(WorkflowState.DISPATCHING)

        print_logger = get_print_logger(previous.can_id)
        print_logger.info("Re-sending label")
        error = self._dispatch(previous.payload, print_logger)
        if error is None:
            outcome = PrintOutcome.create_completed(
                previous.can_id, previous.code21, previous.record_id, previous.payload
            )
        else:
            outcome = PrintOutcome.create_faulted(
                WorkflowState.DISPATCHING, error,
                can_id=previous.can_id, code21=previous.code21,
                record_id=previous.record_id, payload=previous.payload,
            )

        with self._lock:
            self._last_outcome = outcome
            self._transition(outcome.state)
        return outcome

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _can_continue(self) -> bool:
        if self._state == WorkflowState.COMPLETED:
            return True
        outcome = self._last_outcome
        return (
            self._state == WorkflowState.FAULTED
            and outcome is not None
            and outcome.failed_step == WorkflowState.DISPATCHING
        )

    def _set_state(self, state: WorkflowState) -> None:
        with self._lock:
            self._transition(state)

    def _transition(self, state: WorkflowState) -> None:
        """Change state. Caller holds self._lock."""
        if state != self._state:
            logger.info(f"Workflow: {self._state.value} -> {state.value}")
        self._state = state


def _coerce_weight(value) -> int:
    """Accept an int or a digit string; reject everything else."""
    if isinstance(value, bool):
        raise ValidationError("Weight must be a whole number of grams", field="weight_grams")
    if isinstance(value, int):
        weight = value
    elif isinstance(value, str) and _WEIGHT_RE.fullmatch(value.strip()):
        weight = int(value.strip())
    else:
        raise ValidationError("Weight must be a whole number of grams", field="weight_grams")

    if weight < 0:
        raise ValidationError("Weight cannot be negative", field="weight_grams")
    return weight
