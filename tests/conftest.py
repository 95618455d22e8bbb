"""Conftest: an in-process fake of the Firebase REST endpoints.

``FakeBackend`` serves identity-toolkit sign-in/sign-up, secure-token
refresh, a small Firestore documents API and Gemini ``generateContent``
from one aiohttp application.  Tests drive it through the real
``SmartCalApiClient`` over HTTP, using ``aiohttp.test_utils.TestServer``.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp
import pytest
from aiohttp import test_utils, web

from smartcal._client import SmartCalApiClient
from smartcal.config import SmartCalConfig

API_KEY = "test-key"
PROJECT_ID = "demo"
DOCUMENTS_PREFIX = f"/fs/projects/{PROJECT_ID}/databases/(default)/documents/"
PAGE_SIZE = 2  # small on purpose, so listings exercise pagination


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": {"code": status, "message": message}}, status=status)


class FakeBackend:
    """Minimal stand-in for the Firebase services the client talks to."""

    def __init__(self) -> None:
        self.accounts: dict[str, tuple[str, str]] = {}  # email -> (password, uid)
        self.documents: dict[str, dict[str, Any]] = {}  # path -> fields
        self.tokens: dict[str, str] = {}  # id token -> uid
        self.requests: list[tuple[str, str, list[tuple[str, str]]]] = []
        self.refresh_count = 0
        self.expires_in = "3600"
        self.store_status: int | None = None  # force an error status for store calls
        self.retry_after: str | None = None
        self.gemini_status = 200
        self.gemini_response: Any = {}
        self.gemini_requests: list[dict[str, Any]] = []
        self._ids = itertools.count(1)
        self.app = web.Application()
        self.app.router.add_route("*", "/{tail:.*}", self._dispatch)

    # ------------------------------------------------------------------ #
    #  Helpers for tests
    # ------------------------------------------------------------------ #

    def add_account(self, email: str, password: str) -> str:
        uid = f"uid{next(self._ids)}"
        self.accounts[email] = (password, uid)
        return uid

    def put_document(self, path: str, fields: dict[str, Any]) -> None:
        self.documents[path] = fields

    def store_requests(self, method: str | None = None) -> list[tuple[str, str, list]]:
        return [
            r for r in self.requests
            if r[1].startswith(DOCUMENTS_PREFIX) and (method is None or r[0] == method)
        ]

    # ------------------------------------------------------------------ #
    #  Routing
    # ------------------------------------------------------------------ #

    async def _dispatch(self, request: web.Request) -> web.StreamResponse:
        path = request.path
        self.requests.append((request.method, path, list(request.query.items())))
        if path.startswith("/auth/") and request.query.get("key") != API_KEY:
            return _error(400, "API_KEY_INVALID")
        if path == "/auth/accounts:signInWithPassword":
            return await self._sign_in(request)
        if path == "/auth/accounts:signUp":
            return await self._sign_up(request)
        if path == "/token/token":
            return await self._refresh(request)
        if path.startswith("/gemini/models/"):
            return await self._generate(request)
        if path.startswith(DOCUMENTS_PREFIX):
            return await self._store(request, path[len(DOCUMENTS_PREFIX):])
        return _error(404, "NOT_FOUND")

    def _session_body(self, uid: str, email: str) -> dict[str, Any]:
        token = f"id-{uid}-{next(self._ids)}"
        self.tokens[token] = uid
        return {
            "localId": uid,
            "email": email,
            "idToken": token,
            "refreshToken": f"refresh-{uid}",
            "expiresIn": self.expires_in,
        }

    async def _sign_in(self, request: web.Request) -> web.Response:
        body = await request.json()
        account = self.accounts.get(body["email"])
        if account is None:
            return _error(400, "EMAIL_NOT_FOUND")
        if account[0] != body["password"]:
            return _error(400, "INVALID_PASSWORD")
        return web.json_response(self._session_body(account[1], body["email"]))

    async def _sign_up(self, request: web.Request) -> web.Response:
        body = await request.json()
        if body["email"] in self.accounts:
            return _error(400, "EMAIL_EXISTS")
        if len(body["password"]) < 6:
            return _error(400, "WEAK_PASSWORD : Password should be at least 6 characters")
        uid = self.add_account(body["email"], body["password"])
        return web.json_response(self._session_body(uid, body["email"]))

    async def _refresh(self, request: web.Request) -> web.Response:
        form = await request.post()
        refresh_token = str(form.get("refresh_token", ""))
        if form.get("grant_type") != "refresh_token" or not refresh_token.startswith("refresh-"):
            return _error(400, "INVALID_REFRESH_TOKEN")
        self.refresh_count += 1
        uid = refresh_token[len("refresh-"):]
        token = f"id-{uid}-{next(self._ids)}"
        self.tokens[token] = uid
        return web.json_response(
            {"id_token": token, "refresh_token": refresh_token, "expires_in": "3600", "user_id": uid}
        )

    async def _generate(self, request: web.Request) -> web.Response:
        if request.headers.get("x-goog-api-key") != "gemini-key":
            return _error(403, "PERMISSION_DENIED")
        self.gemini_requests.append(await request.json())
        if self.gemini_status != 200:
            return _error(self.gemini_status, "RESOURCE_EXHAUSTED")
        return web.json_response(self.gemini_response)

    async def _store(self, request: web.Request, doc_path: str) -> web.Response:
        auth = request.headers.get("Authorization", "")
        uid = self.tokens.get(auth.removeprefix("Bearer "))
        if uid is None:
            return _error(401, "UNAUTHENTICATED")
        if not doc_path.startswith(f"users/{uid}/"):
            return _error(403, "PERMISSION_DENIED")
        if self.store_status is not None:
            headers = {"Retry-After": self.retry_after} if self.retry_after else None
            return web.json_response(
                {"error": {"code": self.store_status}}, status=self.store_status, headers=headers
            )

        is_collection = len(doc_path.split("/")) % 2 == 1
        if request.method == "GET" and is_collection:
            return self._list(request, doc_path)
        if request.method == "GET":
            if doc_path not in self.documents:
                return _error(404, "NOT_FOUND")
            return web.json_response(self._resource(doc_path))
        if request.method == "PATCH":
            body = await request.json()
            mask = request.query.getall("updateMask.fieldPaths", [])
            if mask:
                stored = dict(self.documents.get(doc_path, {}))
                stored.update({k: v for k, v in body["fields"].items() if k in mask})
            else:
                stored = body["fields"]
            self.documents[doc_path] = stored
            return web.json_response(self._resource(doc_path))
        if request.method == "DELETE":
            self.documents.pop(doc_path, None)
            return web.json_response({})
        return _error(405, "METHOD_NOT_ALLOWED")

    def _resource(self, doc_path: str) -> dict[str, Any]:
        return {"name": f"projects/{PROJECT_ID}/databases/(default)/documents/{doc_path}",
                "fields": self.documents[doc_path]}

    def _list(self, request: web.Request, collection: str) -> web.Response:
        children = sorted(
            path for path in self.documents
            if path.startswith(collection + "/") and "/" not in path[len(collection) + 1:]
        )
        offset = int(request.query.get("pageToken", "0"))
        page = children[offset:offset + PAGE_SIZE]
        body: dict[str, Any] = {"documents": [self._resource(p) for p in page]}
        if offset + PAGE_SIZE < len(children):
            body["nextPageToken"] = str(offset + PAGE_SIZE)
        return web.json_response(body if page else {})


Scenario = Callable[[SmartCalApiClient, aiohttp.ClientSession, SmartCalConfig], Awaitable[Any]]


async def _serve(backend: FakeBackend, scenario: Scenario) -> Any:
    async with test_utils.TestServer(backend.app) as server:
        base = str(server.make_url("/")).rstrip("/")
        config = SmartCalConfig.from_dict(
            {
                "api_key": API_KEY,
                "project_id": PROJECT_ID,
                "gemini_api_key": "gemini-key",
                "auth_url": f"{base}/auth",
                "token_url": f"{base}/token",
                "firestore_url": f"{base}/fs",
                "gemini_url": f"{base}/gemini",
            }
        )
        async with aiohttp.ClientSession() as session:
            client = SmartCalApiClient(config, session)
            return await scenario(client, session, config)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def run(backend: FakeBackend) -> Callable[[Scenario], Any]:
    """Run an async scenario against a live ``FakeBackend`` server."""

    def runner(scenario: Scenario) -> Any:
        return asyncio.run(_serve(backend, scenario))

    return runner
