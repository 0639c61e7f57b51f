"""Read-only, per-request view of business records used to ground prompts."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Iterable, Protocol

Record = dict[str, Any]

UNSPECIFIED = "unspecified"


def count_by(records: Iterable[Record], key: str) -> dict[str, int]:
    """Count records per value of `key`, in first-seen order."""
    counts: dict[str, int] = {}
    for record in records:
        value = record.get(key) or UNSPECIFIED
        counts[str(value)] = counts.get(str(value), 0) + 1
    return counts


@dataclass(frozen=True)
class BusinessSnapshot:
    customers: tuple[Record, ...] = ()
    orders: tuple[Record, ...] = ()
    inquiries: tuple[Record, ...] = ()
    products: tuple[Record, ...] = ()

    @classmethod
    def capture(
        cls,
        customers: Iterable[Record],
        orders: Iterable[Record],
        inquiries: Iterable[Record],
        products: Iterable[Record],
    ) -> BusinessSnapshot:
        """Deep-copy the live collections so later mutations cannot leak in."""
        return cls(
            customers=tuple(copy.deepcopy(list(customers))),
            orders=tuple(copy.deepcopy(list(orders))),
            inquiries=tuple(copy.deepcopy(list(inquiries))),
            products=tuple(copy.deepcopy(list(products))),
        )

    def counts(self) -> dict[str, int]:
        return {
            "customers": len(self.customers),
            "orders": len(self.orders),
            "inquiries": len(self.inquiries),
            "products": len(self.products),
        }

    def breakdowns(self) -> dict[str, dict[str, int]]:
        return {
            "customers_by_type": count_by(self.customers, "type"),
            "customers_by_tier": count_by(self.customers, "tier"),
            "customers_by_country": count_by(self.customers, "country"),
            "orders_by_status": count_by(self.orders, "status"),
            "inquiries_by_status": count_by(self.inquiries, "status"),
        }

    def samples(self, size: int) -> dict[str, list[Record]]:
        return {
            "customers": list(self.customers[:size]),
            "orders": list(self.orders[:size]),
            "inquiries": list(self.inquiries[:size]),
        }

    def find_customer(self, customer_id: str) -> Record | None:
        for customer in self.customers:
            if customer.get("id") == customer_id:
                return customer
        return None

    def orders_for(self, customer_id: str) -> list[Record]:
        return [o for o in self.orders if o.get("customerId") == customer_id]

    def inquiries_for(self, customer_id: str) -> list[Record]:
        return [i for i in self.inquiries if i.get("customerId") == customer_id]


class SnapshotProvider(Protocol):
    def snapshot(self) -> BusinessSnapshot: ...
