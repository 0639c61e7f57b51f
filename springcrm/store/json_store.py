"""JSON-file document store: load at startup, rewrite a collection after each mutation."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

from springcrm.core.snapshot import BusinessSnapshot, Record
from springcrm.utils.logging import get_logger

log = get_logger(__name__)

COLLECTIONS = ("users", "customers", "products", "orders", "inquiries")

DEFAULT_PRODUCTS: list[Record] = [
    {
        "id": "P001", "name": "Heavy Truck Leaf Spring", "category": "Heavy truck series",
        "spec": "60Si2MnA", "thickness": "12-20mm", "width": "70-120mm", "price": 0,
        "unit": "ton", "description": "For heavy trucks, high load capacity",
    },
    {
        "id": "P002", "name": "Light Truck Leaf Spring", "category": "Light truck series",
        "spec": "55Si2Mn", "thickness": "8-14mm", "width": "50-90mm", "price": 0,
        "unit": "ton", "description": "For light trucks, good elasticity",
    },
    {
        "id": "P003", "name": "Bus Leaf Spring", "category": "Bus series",
        "spec": "50CrVA", "thickness": "10-16mm", "width": "60-100mm", "price": 0,
        "unit": "ton", "description": "For buses, ride comfort",
    },
    {
        "id": "P004", "name": "Trailer Leaf Spring", "category": "Trailer series",
        "spec": "60Si2CrA", "thickness": "12-22mm", "width": "80-130mm", "price": 0,
        "unit": "ton", "description": "For trailers, wear resistant",
    },
    {
        "id": "P005", "name": "Construction Vehicle Leaf Spring", "category": "Construction vehicle series",
        "spec": "55SiMnVB", "thickness": "14-25mm", "width": "90-140mm", "price": 0,
        "unit": "ton", "description": "For construction vehicles, excellent load bearing",
    },
]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_id() -> str:
    return uuid4().hex[:12]


class JsonStore:
    """In-memory collections mirrored to `<data_dir>/<collection>.json`.

    There is no concurrency control beyond the single event loop: every
    mutation runs to completion, including its file write, before another
    handler can observe the collection.
    """

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._collections: dict[str, list[Record]] = {name: [] for name in COLLECTIONS}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        for name in COLLECTIONS:
            path = self._path(name)
            if not path.exists():
                continue
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError(f"{path} does not contain a JSON array")
            self._collections[name] = data

        if not self._collections["products"]:
            self._commit("products", [dict(p) for p in DEFAULT_PRODUCTS])
            log.info("store_seeded", collection="products", count=len(DEFAULT_PRODUCTS))

        log.info(
            "store_loaded",
            data_dir=str(self._data_dir),
            **{name: len(records) for name, records in self._collections.items()},
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def all(self, collection: str) -> list[Record]:
        return list(self._collection(collection))

    def get(self, collection: str, record_id: str) -> Record | None:
        for record in self._collection(collection):
            if record.get("id") == record_id:
                return record
        return None

    def find(self, collection: str, **match: Any) -> Record | None:
        for record in self._collection(collection):
            if all(record.get(k) == v for k, v in match.items()):
                return record
        return None

    def snapshot(self) -> BusinessSnapshot:
        return BusinessSnapshot.capture(
            customers=self._collections["customers"],
            orders=self._collections["orders"],
            inquiries=self._collections["inquiries"],
            products=self._collections["products"],
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(self, collection: str, record: Record) -> Record:
        self._commit(collection, [*self._collection(collection), record])
        return record

    def update(self, collection: str, record_id: str, changes: Record) -> Record | None:
        records = list(self._collection(collection))
        for index, record in enumerate(records):
            if record.get("id") == record_id:
                updated = {**record, **changes, "id": record_id}
                records[index] = updated
                self._commit(collection, records)
                return updated
        return None

    def delete(self, collection: str, record_id: str) -> bool:
        records = list(self._collection(collection))
        for index, record in enumerate(records):
            if record.get("id") == record_id:
                del records[index]
                self._commit(collection, records)
                return True
        return False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _collection(self, name: str) -> list[Record]:
        try:
            return self._collections[name]
        except KeyError:
            raise KeyError(f"Unknown collection: {name}") from None

    def _path(self, name: str) -> Path:
        return self._data_dir / f"{name}.json"

    def _commit(self, name: str, records: list[Record]) -> None:
        """Write `records` to disk, then make them the live collection.

        A failed write leaves both the file and the in-memory list untouched.
        """
        path = self._path(name)
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(records, f, ensure_ascii=False, indent=2, default=str)
        os.replace(tmp, path)
        self._collections[name] = records
