"""
Airtable-backed record store.

The production labeler keeps its catalogs, counter and print log in one
Airtable base. Table and field names are the existing base layout and are
part of the external contract - do not rename them here without migrating
the base.

    contadores   next_id_lata                       (first record is the counter)
    productos    nombre, codigo_producto, rne, rnpa
    marcas       nombre, indicador
    impresiones  id_lata, lote, marca[], producto[], peso_g, rne, rnpa, codigo21

Error mapping:
    - Catalog reads         -> LoadError
    - Counter read          -> LedgerUnavailable
    - Counter update        -> LedgerUpdateFailed
    - Print record create   -> PersistError / DuplicateCanId

Usage:
    store = AirtableRecordStore(api_key, base_id)
    counter = store.read_counter()
    products = store.list_products()
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Any

import requests
from pyairtable import Api

from .exceptions import (
    DuplicateCanId,
    LedgerUnavailable,
    LedgerUpdateFailed,
    LoadError,
    PersistError,
)
from .interfaces import CatalogReader, SequenceLedger, PrintRecordStore
from models.catalog import Product, Brand, pad_product_code
from models.ledger import SequenceCounter, PrintRecord


DEFAULT_TABLES = {
    "counter": "contadores",
    "products": "productos",
    "brands": "marcas",
    "prints": "impresiones",
}

COUNTER_FIELD = "next_id_lata"
PRODUCT_FIELDS = ["nombre", "codigo_producto", "rne", "rnpa"]
BRAND_FIELDS = ["nombre", "indicador"]


class AirtableRecordStore(CatalogReader, SequenceLedger, PrintRecordStore):
    """
    Record store interfaces implemented on top of pyairtable.

    Every call goes to the Airtable REST API; nothing is cached here. The
    print workflow takes its own snapshots on load.
    """

    def __init__(
        self,
        api_key: str,
        base_id: str,
        tables: Optional[Dict[str, str]] = None,
        timeout_seconds: float = 10.0,
        api: Optional[Api] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the store.

        Args:
            api_key: Airtable personal access token
            base_id: Base identifier (appXXXXXXXX)
            tables: Optional overrides for DEFAULT_TABLES
            timeout_seconds: Connect/read timeout per request
            api: Pre-built pyairtable Api (tests)
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If api_key or base_id is missing
        """
        if api is None:
            if not api_key:
                raise ValueError("api_key is required for the Airtable record store")
            api = Api(api_key, timeout=(timeout_seconds, timeout_seconds))
        if not base_id:
            raise ValueError("base_id is required for the Airtable record store")

        names = dict(DEFAULT_TABLES)
        names.update(tables or {})

        self._logger = logger or logging.getLogger("core.airtable_store")
        self._counter_table = api.table(base_id, names["counter"])
        self._product_table = api.table(base_id, names["products"])
        self._brand_table = api.table(base_id, names["brands"])
        self._print_table = api.table(base_id, names["prints"])

    # ---------------------------------------------------------------------
    # Catalog
    # ---------------------------------------------------------------------

    def list_products(self) -> List[Product]:
        try:
            records = self._product_table.all(fields=PRODUCT_FIELDS)
        except requests.exceptions.RequestException as e:
            raise LoadError(f"Could not load products: {e}", source="products") from e

        products = []
        for rec in records:
            fields = rec.get("fields", {})
            products.append(Product(
                id=rec["id"],
                display_name=fields.get("nombre", ""),
                product_code=pad_product_code(fields.get("codigo_producto", "")),
                rne=str(fields.get("rne", "") or ""),
                rnpa=str(fields.get("rnpa", "") or ""),
            ))
        self._logger.debug(f"Loaded {len(products)} products")
        return products

    def list_brands(self) -> List[Brand]:
        try:
            records = self._brand_table.all(fields=BRAND_FIELDS)
        except requests.exceptions.RequestException as e:
            raise LoadError(f"Could not load brands: {e}", source="brands") from e

        brands = []
        for rec in records:
            fields = rec.get("fields", {})
            indicator = fields.get("indicador")
            if indicator is None:
                self._logger.warning(f"Brand {rec['id']} has no indicator - skipped")
                continue
            brands.append(Brand(
                id=rec["id"],
                display_name=fields.get("nombre", ""),
                indicator=int(indicator),
            ))
        self._logger.debug(f"Loaded {len(brands)} brands")
        return brands

    # ---------------------------------------------------------------------
    # Ledger
    # ---------------------------------------------------------------------

    def read_counter(self) -> SequenceCounter:
        try:
            rec = self._counter_table.first(fields=[COUNTER_FIELD])
        except requests.exceptions.RequestException as e:
            raise LedgerUnavailable(f"Could not read the can counter: {e}") from e

        if rec is None:
            raise LedgerUnavailable("The counter table has no seed record")

        value = rec.get("fields", {}).get(COUNTER_FIELD)
        if value is None:
            raise LedgerUnavailable(f"Counter record {rec['id']} has no {COUNTER_FIELD}")
        return SequenceCounter(id=rec["id"], next_id=int(value))

    def advance_counter(self, counter_id: str, next_id: int) -> None:
        try:
            self._counter_table.update(counter_id, {COUNTER_FIELD: next_id})
        except requests.exceptions.RequestException as e:
            raise LedgerUpdateFailed(next_id - 1, counter_id=counter_id, reason=str(e)) from e
        self._logger.debug(f"Counter {counter_id} set to {next_id}")

    # ---------------------------------------------------------------------
    # Print log
    # ---------------------------------------------------------------------

    def append_record(self, record: PrintRecord) -> str:
        try:
            exists = self.has_can_id(record.can_id)
        except LoadError as e:
            raise PersistError(
                f"Could not check for an existing record: {e.message}", can_id=record.can_id
            ) from e
        if exists:
            raise DuplicateCanId(record.can_id)

        fields: Dict[str, Any] = {
            "id_lata": record.can_id,
            # The base stores lote as a number; code21 keeps the padded form
            "lote": int(record.lot),
            "marca": [record.brand_id],
            "producto": [record.product_id],
            "peso_g": record.weight_grams,
            "rne": record.rne,
            "rnpa": record.rnpa,
            "codigo21": record.code21,
        }
        try:
            created = self._print_table.create(fields)
        except requests.exceptions.RequestException as e:
            raise PersistError(f"Could not store print record: {e}", can_id=record.can_id) from e
        return created["id"]

    def has_can_id(self, can_id: int) -> bool:
        return self._exists(f"{{id_lata}} = {int(can_id)}", "prints")

    def lot_exists(self, lot: str) -> bool:
        return self._exists(f"{{lote}} = {int(lot)}", "prints")

    def _exists(self, formula: str, source: str) -> bool:
        try:
            recs = self._print_table.all(formula=formula, max_records=1, fields=["id_lata"])
        except requests.exceptions.RequestException as e:
            raise LoadError(f"Could not query print log: {e}", source=source) from e
        return len(recs) > 0
