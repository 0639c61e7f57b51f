"""Tests for the HTTP API: auth, CRUD endpoints and assistant endpoints."""

import pytest
from aiohttp.test_utils import TestClient, TestServer
from unittest.mock import AsyncMock

from springcrm.api import ApiServer
from springcrm.config import AuthConfig, PromptConfig, ServerConfig
from springcrm.core.assistant import Assistant
from springcrm.core.auth import AuthManager
from springcrm.core.fallback import FallbackController
from springcrm.core.llm import (
    ChatChoice,
    ChatCompletion,
    ChatCompletionClient,
    ChatMessage,
    ToolDeclaration,
    TransportError,
    UpstreamError,
)
from springcrm.core.tool_use import ToolUseOrchestrator
from springcrm.store import JsonStore


def completion(content="", finish_reason="stop", tool_calls=None):
    payload = {"role": "assistant", "content": content}
    if tool_calls is not None:
        payload["tool_calls"] = tool_calls
    return ChatCompletion(choices=[
        ChatChoice(message=ChatMessage.from_api(payload), finish_reason=finish_reason)
    ])


@pytest.fixture
def store(tmp_path):
    s = JsonStore(tmp_path)
    s.load()
    return s


@pytest.fixture
def llm():
    return AsyncMock(spec=ChatCompletionClient)


@pytest.fixture
def app(store, llm):
    auth = AuthManager(AuthConfig(jwt_secret="test-secret"), store)
    auth.ensure_admin()
    fallback = FallbackController(llm, ToolUseOrchestrator(llm), "$web_search")
    assistant = Assistant(store, llm, fallback, PromptConfig(company_name="Huayu Springs"))
    server = ApiServer(ServerConfig(port=0), store, auth, assistant)
    return server.build_app()


@pytest.fixture
async def client(app):
    async with TestClient(TestServer(app)) as c:
        yield c


@pytest.fixture
async def headers(client):
    resp = await client.post("/api/login", json={"username": "admin", "password": "admin123"})
    body = await resp.json()
    return {"Authorization": f"Bearer {body['token']}"}


class TestSession:
    async def test_login_rejects_bad_password(self, client):
        resp = await client.post("/api/login", json={"username": "admin", "password": "wrong"})
        assert resp.status == 401
        body = await resp.json()
        assert body["success"] is False
        assert body["message"]

    async def test_login_and_me(self, client, headers):
        resp = await client.get("/api/me", headers=headers)
        assert resp.status == 200
        body = await resp.json()
        assert body["success"] is True
        assert body["user"]["username"] == "admin"
        assert "password" not in body["user"]

    async def test_missing_token(self, client):
        resp = await client.get("/api/customers")
        assert resp.status == 401
        assert (await resp.json())["success"] is False

    async def test_invalid_token(self, client):
        resp = await client.get("/api/customers", headers={"Authorization": "Bearer garbage"})
        assert resp.status == 401

    async def test_invalid_json(self, client, headers):
        resp = await client.post(
            "/api/customers",
            data=b"not json",
            headers={**headers, "Content-Type": "application/json"},
        )
        assert resp.status == 400
        assert (await resp.json())["success"] is False


class TestCustomers:
    async def test_crud(self, client, headers):
        resp = await client.post(
            "/api/customers",
            json={"name": "Ivan Petrov", "company": "Volga Parts", "country": "Russia"},
            headers=headers,
        )
        assert resp.status == 200
        created = (await resp.json())["data"]
        assert created["id"]
        assert created["createdBy"] == "System Administrator"
        assert created["createdAt"]

        resp = await client.put(
            f"/api/customers/{created['id']}", json={"status": "active"}, headers=headers
        )
        updated = (await resp.json())["data"]
        assert updated["status"] == "active"
        assert updated["name"] == "Ivan Petrov"
        assert updated["updatedAt"]

        resp = await client.delete(f"/api/customers/{created['id']}", headers=headers)
        assert (await resp.json())["success"] is True

        resp = await client.delete(f"/api/customers/{created['id']}", headers=headers)
        assert resp.status == 404

    async def test_filters(self, client, headers):
        for payload in (
            {"name": "Ivan", "company": "Volga Parts", "country": "Russia", "status": "active"},
            {"name": "Amina", "company": "Lagos Haulage", "country": "Nigeria", "email": "a@volgamail.ng"},
            {"name": "Carlos", "company": "Andes", "country": "Chile", "status": "active"},
        ):
            await client.post("/api/customers", json=payload, headers=headers)

        resp = await client.get("/api/customers", params={"search": "VOLGA"}, headers=headers)
        body = await resp.json()
        assert body["total"] == 2
        assert {c["name"] for c in body["data"]} == {"Ivan", "Amina"}

        resp = await client.get("/api/customers", params={"status": "active", "country": "Chile"}, headers=headers)
        body = await resp.json()
        assert [c["name"] for c in body["data"]] == ["Carlos"]


class TestProductsOrdersInquiries:
    async def test_products(self, client, headers):
        resp = await client.get("/api/products", headers=headers)
        assert len((await resp.json())["data"]) == 5

        resp = await client.post("/api/products", json={"name": "Parabolic Spring"}, headers=headers)
        product = (await resp.json())["data"]
        assert product["id"].startswith("P")

        resp = await client.put("/api/products/P001", json={"price": 980}, headers=headers)
        assert (await resp.json())["data"]["price"] == 980

        resp = await client.put("/api/products/PX", json={"price": 1}, headers=headers)
        assert resp.status == 404

    async def test_orders(self, client, headers):
        resp = await client.post(
            "/api/orders", json={"customerId": "c1", "status": "shipped"}, headers=headers
        )
        order = (await resp.json())["data"]
        assert order["id"].startswith("ORD")
        assert order["status"] == "pending"

        resp = await client.put(f"/api/orders/{order['id']}/status", json={}, headers=headers)
        assert resp.status == 400

        resp = await client.put(
            f"/api/orders/{order['id']}/status", json={"status": "shipped"}, headers=headers
        )
        assert (await resp.json())["data"]["status"] == "shipped"

        resp = await client.get("/api/orders", params={"customerId": "c1"}, headers=headers)
        assert (await resp.json())["total"] == 1
        resp = await client.get("/api/orders", params={"status": "pending"}, headers=headers)
        assert (await resp.json())["total"] == 0

    async def test_inquiries(self, client, headers):
        resp = await client.post("/api/inquiries", json={"subject": "Price list"}, headers=headers)
        inquiry = (await resp.json())["data"]
        assert inquiry["id"].startswith("INQ")
        assert inquiry["status"] == "new"

        resp = await client.put(f"/api/inquiries/{inquiry['id']}", json={"status": "replied"}, headers=headers)
        assert (await resp.json())["data"]["status"] == "replied"

        resp = await client.get("/api/inquiries", params={"status": "new"}, headers=headers)
        assert (await resp.json())["total"] == 0

    async def test_stats(self, client, store, headers):
        store.insert("customers", {"id": "c1", "country": "Russia"})
        store.insert("customers", {"id": "c2", "country": "Russia"})
        for i in range(7):
            store.insert("orders", {"id": f"ORD{i}", "status": "pending" if i % 2 else "shipped"})
        store.insert("inquiries", {"id": "INQ1", "status": "new"})

        resp = await client.get("/api/stats", headers=headers)
        data = (await resp.json())["data"]
        assert data["totalCustomers"] == 2
        assert data["totalOrders"] == 7
        assert data["pendingOrders"] == 3
        assert data["newInquiries"] == 1
        assert data["customerCountries"] == {"Russia": 2}
        assert [o["id"] for o in data["recentOrders"]] == ["ORD6", "ORD5", "ORD4", "ORD3", "ORD2"]


class TestAssistantEndpoints:
    async def test_ask(self, client, headers, llm, store):
        store.insert("customers", {"id": "c1", "name": "Ivan Petrov"})
        llm.complete.return_value = completion("You have one customer.")

        resp = await client.post(
            "/api/ai/ask", json={"question": "How many customers?", "apiKey": "sk-test"}, headers=headers
        )

        assert resp.status == 200
        assert await resp.json() == {"success": True, "response": "You have one customer."}
        messages, credential = llm.complete.call_args.args
        assert credential == "sk-test"
        assert messages[0].role == "system"
        assert "Ivan Petrov" in messages[0].content
        assert messages[1] == ChatMessage.user("How many customers?")

    async def test_api_key_from_header(self, client, headers, llm):
        llm.complete.return_value = completion("ok")
        resp = await client.post(
            "/api/ai/ask", json={"question": "Hi"}, headers={**headers, "X-Api-Key": "sk-header"}
        )
        assert resp.status == 200
        assert llm.complete.call_args.args[1] == "sk-header"

    async def test_missing_question(self, client, headers, llm):
        resp = await client.post("/api/ai/ask", json={"apiKey": "sk-test"}, headers=headers)
        assert resp.status == 400
        llm.complete.assert_not_awaited()

    async def test_company_research_without_key_makes_no_call(self, client, headers, llm):
        resp = await client.post(
            "/api/ai/company-research", json={"query": "Acme Trucks", "apiKey": ""}, headers=headers
        )
        assert resp.status == 400
        assert (await resp.json())["success"] is False
        llm.complete.assert_not_awaited()

    async def test_company_research_uses_search_tool(self, client, headers, llm):
        llm.complete.return_value = completion("Acme builds trailers.")

        resp = await client.post(
            "/api/ai/company-research", json={"query": "Acme Trucks", "apiKey": "sk-test"}, headers=headers
        )

        assert await resp.json() == {"success": True, "response": "Acme builds trailers."}
        assert llm.complete.call_args.kwargs == {"tools": [ToolDeclaration(name="$web_search")]}

    async def test_company_research_falls_back(self, client, headers, llm):
        llm.complete.side_effect = [UpstreamError("tool unsupported", status=400), completion("Plain")]

        resp = await client.post(
            "/api/ai/company-research", json={"query": "Acme Trucks", "apiKey": "sk-test"}, headers=headers
        )

        assert await resp.json() == {"success": True, "response": "Plain"}
        assert llm.complete.await_count == 2

    async def test_company_research_both_paths_fail(self, client, headers, llm):
        llm.complete.side_effect = [TransportError("timeout"), UpstreamError("Invalid Authentication", status=401)]

        resp = await client.post(
            "/api/ai/company-research", json={"query": "Acme Trucks", "apiKey": "sk-bad"}, headers=headers
        )

        assert resp.status == 502
        body = await resp.json()
        assert body["success"] is False
        assert "Invalid Authentication" in body["message"]
        assert "timeout" not in body["message"]

    async def test_customer_analysis(self, client, headers, llm, store):
        store.insert("customers", {"id": "c1", "name": "Ivan Petrov"})
        store.insert("orders", {"id": "ORD1", "customerId": "c1"})
        llm.complete.return_value = completion("Valuable customer.")

        resp = await client.post("/api/ai/customers/c1/analysis", json={"apiKey": "sk-test"}, headers=headers)

        assert await resp.json() == {"success": True, "response": "Valuable customer."}
        system = llm.complete.call_args.args[0][0]
        assert "Ivan Petrov" in system.content
        assert "ORD1" in system.content

    async def test_customer_analysis_unknown_customer(self, client, headers, llm):
        resp = await client.post("/api/ai/customers/ghost/analysis", json={"apiKey": "sk-test"}, headers=headers)
        assert resp.status == 404
        llm.complete.assert_not_awaited()

    async def test_plain_flow_upstream_error(self, client, headers, llm):
        llm.complete.side_effect = UpstreamError("quota exceeded", status=429)
        resp = await client.post(
            "/api/ai/ask", json={"question": "Hi", "apiKey": "sk-test"}, headers=headers
        )
        assert resp.status == 502
        body = await resp.json()
        assert body == {"success": False, "message": "AI service error: quota exceeded"}

    @pytest.mark.parametrize(
        "path, payload",
        [
            ("/api/ai/ask", {"question": None, "apiKey": "sk-test"}),
            ("/api/ai/ask", {"question": 42, "apiKey": "sk-test"}),
            ("/api/ai/ask", {"question": "Hi", "apiKey": None}),
            ("/api/ai/company-research", {"query": None, "apiKey": "sk-test"}),
            ("/api/ai/company-research", {"query": "Acme Trucks", "apiKey": None}),
        ],
    )
    async def test_null_fields_are_missing(self, client, headers, llm, path, payload):
        resp = await client.post(path, json=payload, headers=headers)
        assert resp.status == 400
        assert (await resp.json())["success"] is False
        llm.complete.assert_not_awaited()

    async def test_customer_analysis_internal_key_error_is_not_404(self, client, headers, llm, store):
        store.insert("customers", {"id": "c1", "name": "Ivan Petrov"})
        llm.complete.side_effect = KeyError("choices")

        resp = await client.post("/api/ai/customers/c1/analysis", json={"apiKey": "sk-test"}, headers=headers)

        assert resp.status == 500
        assert await resp.json() == {"success": False, "message": "Internal server error"}
