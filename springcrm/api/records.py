"""CRUD endpoints for customers, products, orders and inquiries, plus login and stats."""

from __future__ import annotations

import time
from typing import Any

from aiohttp import web

from springcrm.api.responses import ApiError, ok, read_json
from springcrm.core.auth import AuthManager, public_user
from springcrm.core.snapshot import count_by
from springcrm.store import JsonStore, generate_id, now_iso
from springcrm.utils.logging import get_logger

log = get_logger(__name__)

RECENT_LIMIT = 5


def _matches(value: Any, keyword: str) -> bool:
    return isinstance(value, str) and keyword in value.lower()


def _creator(request: web.Request) -> str:
    user = request.get("user") or {}
    return user.get("name", "")


class RecordHandlers:
    def __init__(self, store: JsonStore, auth: AuthManager) -> None:
        self._store = store
        self._auth = auth

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/api/login", self.login)
        router.add_get("/api/me", self.me)

        router.add_get("/api/customers", self.list_customers)
        router.add_post("/api/customers", self.create_customer)
        router.add_put("/api/customers/{id}", self.update_customer)
        router.add_delete("/api/customers/{id}", self.delete_customer)

        router.add_get("/api/products", self.list_products)
        router.add_post("/api/products", self.create_product)
        router.add_put("/api/products/{id}", self.update_product)

        router.add_get("/api/orders", self.list_orders)
        router.add_post("/api/orders", self.create_order)
        router.add_put("/api/orders/{id}/status", self.update_order_status)

        router.add_get("/api/inquiries", self.list_inquiries)
        router.add_post("/api/inquiries", self.create_inquiry)
        router.add_put("/api/inquiries/{id}", self.update_inquiry)

        router.add_get("/api/stats", self.stats)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def login(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        result = self._auth.login(str(body.get("username", "")), str(body.get("password", "")))
        if result is None:
            raise ApiError(401, "Invalid username or password")
        token, user = result
        return ok(token=token, user=user)

    async def me(self, request: web.Request) -> web.Response:
        return ok(user=public_user(request["user"]))

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    async def list_customers(self, request: web.Request) -> web.Response:
        search = request.query.get("search", "").lower()
        status = request.query.get("status")
        country = request.query.get("country")

        result = self._store.all("customers")
        if search:
            result = [
                c for c in result
                if _matches(c.get("name"), search)
                or _matches(c.get("company"), search)
                or _matches(c.get("email"), search)
            ]
        if status:
            result = [c for c in result if c.get("status") == status]
        if country:
            result = [c for c in result if c.get("country") == country]
        return ok(data=result, total=len(result))

    async def create_customer(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        customer = {
            **body,
            "id": generate_id(),
            "createdAt": now_iso(),
            "createdBy": _creator(request),
        }
        self._store.insert("customers", customer)
        log.info("customer_created", customer_id=customer["id"])
        return ok(message="Customer created", data=customer)

    async def update_customer(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        customer = self._store.update(
            "customers", request.match_info["id"], {**body, "updatedAt": now_iso()}
        )
        if customer is None:
            raise ApiError(404, "Customer not found")
        return ok(message="Customer updated", data=customer)

    async def delete_customer(self, request: web.Request) -> web.Response:
        if not self._store.delete("customers", request.match_info["id"]):
            raise ApiError(404, "Customer not found")
        log.info("customer_deleted", customer_id=request.match_info["id"])
        return ok(message="Customer deleted")

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    async def list_products(self, request: web.Request) -> web.Response:
        return ok(data=self._store.all("products"))

    async def create_product(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        product = {**body, "id": "P" + generate_id().upper()}
        self._store.insert("products", product)
        return ok(message="Product created", data=product)

    async def update_product(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        product = self._store.update("products", request.match_info["id"], body)
        if product is None:
            raise ApiError(404, "Product not found")
        return ok(message="Product updated", data=product)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def list_orders(self, request: web.Request) -> web.Response:
        status = request.query.get("status")
        customer_id = request.query.get("customerId")

        result = self._store.all("orders")
        if status:
            result = [o for o in result if o.get("status") == status]
        if customer_id:
            result = [o for o in result if o.get("customerId") == customer_id]
        return ok(data=result, total=len(result))

    async def create_order(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        order = {
            **body,
            "id": f"ORD{int(time.time() * 1000)}",
            "status": "pending",
            "createdAt": now_iso(),
            "createdBy": _creator(request),
        }
        self._store.insert("orders", order)
        log.info("order_created", order_id=order["id"])
        return ok(message="Order created", data=order)

    async def update_order_status(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        status = body.get("status")
        if not status:
            raise ApiError(400, "Order status is required")
        order = self._store.update(
            "orders", request.match_info["id"], {"status": status, "updatedAt": now_iso()}
        )
        if order is None:
            raise ApiError(404, "Order not found")
        return ok(message="Order status updated", data=order)

    # ------------------------------------------------------------------
    # Inquiries
    # ------------------------------------------------------------------

    async def list_inquiries(self, request: web.Request) -> web.Response:
        status = request.query.get("status")
        result = self._store.all("inquiries")
        if status:
            result = [i for i in result if i.get("status") == status]
        return ok(data=result, total=len(result))

    async def create_inquiry(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        inquiry = {
            **body,
            "id": f"INQ{int(time.time() * 1000)}",
            "status": "new",
            "createdAt": now_iso(),
            "createdBy": _creator(request),
        }
        self._store.insert("inquiries", inquiry)
        return ok(message="Inquiry created", data=inquiry)

    async def update_inquiry(self, request: web.Request) -> web.Response:
        body = await read_json(request)
        inquiry = self._store.update(
            "inquiries", request.match_info["id"], {**body, "updatedAt": now_iso()}
        )
        if inquiry is None:
            raise ApiError(404, "Inquiry not found")
        return ok(message="Inquiry updated", data=inquiry)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    async def stats(self, request: web.Request) -> web.Response:
        customers = self._store.all("customers")
        orders = self._store.all("orders")
        inquiries = self._store.all("inquiries")
        return ok(data={
            "totalCustomers": len(customers),
            "totalOrders": len(orders),
            "totalInquiries": len(inquiries),
            "pendingOrders": sum(1 for o in orders if o.get("status") == "pending"),
            "newInquiries": sum(1 for i in inquiries if i.get("status") == "new"),
            "customerCountries": count_by(customers, "country"),
            "recentOrders": orders[-RECENT_LIMIT:][::-1],
            "recentInquiries": inquiries[-RECENT_LIMIT:][::-1],
        })
