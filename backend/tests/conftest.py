"""
Shared test doubles
===================
``FakeSupabase`` stands in for the Supabase client. Each ``.table(name)``
call returns a ``FakeQuery`` that records the chained calls and, on
``.execute()``, returns the response registered for ``(table, operation)``.

    fake.on("workouts", "select", data=[...])
    fake.on("follows", "select", count=3)
    fake.on("follows", "insert", error=APIError({...}))

Responses registered several times for the same key are returned in order;
the last one repeats.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from types import SimpleNamespace
from typing import Any, Callable, Iterator, Optional
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

USER_ID = str(uuid.uuid4())
OTHER_ID = str(uuid.uuid4())
AUTH_HEADER = {"Authorization": "Bearer fake-valid-token"}

_CHAIN_METHODS = (
    "eq", "neq", "in_", "gt", "gte", "lt", "lte", "ilike", "or_",
    "order", "limit", "range",
)


class FakeQuery:
    def __init__(self, fake: FakeSupabase, table: str) -> None:
        self._fake = fake
        self.table = table
        self.operation = "select"
        self.payload: Any = None
        self.calls: list[tuple[str, tuple, dict]] = []
        self.single = False

    # --- operations -------------------------------------------------------

    def select(self, *args, **kwargs) -> FakeQuery:
        self.operation = "select"
        self.calls.append(("select", args, kwargs))
        return self

    def insert(self, payload, **kwargs) -> FakeQuery:
        return self._write("insert", payload, kwargs)

    def update(self, payload, **kwargs) -> FakeQuery:
        return self._write("update", payload, kwargs)

    def upsert(self, payload, **kwargs) -> FakeQuery:
        return self._write("upsert", payload, kwargs)

    def delete(self, **kwargs) -> FakeQuery:
        return self._write("delete", None, kwargs)

    def maybe_single(self) -> FakeQuery:
        self.single = True
        return self

    def _write(self, operation: str, payload: Any, kwargs: dict) -> FakeQuery:
        self.operation = operation
        self.payload = payload
        self.calls.append((operation, (payload,), kwargs))
        return self

    # --- filters ----------------------------------------------------------

    def __getattr__(self, name: str) -> Callable[..., FakeQuery]:
        if name not in _CHAIN_METHODS:
            raise AttributeError(name)

        def _chain(*args, **kwargs) -> FakeQuery:
            self.calls.append((name, args, kwargs))
            return self

        return _chain

    def filters(self, name: str) -> list[tuple]:
        return [args for call, args, _ in self.calls if call == name]

    # --- terminal ---------------------------------------------------------

    def execute(self) -> Any:
        self._fake.executed.append(self)
        response = self._fake.next_response(self.table, self.operation)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(self)
        data = response.get("data")
        if self.single and isinstance(data, list):
            data = data[0] if data else None
        return SimpleNamespace(data=data, count=response.get("count"))


class FakeSupabase:
    def __init__(self) -> None:
        self._responses: dict[tuple[str, str], list[Any]] = {}
        self.executed: list[FakeQuery] = []
        self.auth = MagicMock()
        self.storage = MagicMock()

    def sign_in(self, user_id: str = USER_ID, email: str = "runner@example.com") -> None:
        self.auth.get_user.return_value = SimpleNamespace(
            user=SimpleNamespace(id=user_id, email=email)
        )

    def reject_token(self) -> None:
        self.auth.get_user.side_effect = Exception("Invalid token")

    def on(
        self,
        table: str,
        operation: str,
        *,
        data: Any = None,
        count: Optional[int] = None,
        error: Optional[Exception] = None,
        handler: Optional[Callable[[FakeQuery], dict]] = None,
    ) -> FakeSupabase:
        if error is not None:
            response: Any = error
        elif handler is not None:
            response = handler
        else:
            response = {"data": data, "count": count}
        self._responses.setdefault((table, operation), []).append(response)
        return self

    def next_response(self, table: str, operation: str) -> Any:
        queue = self._responses.get((table, operation))
        if not queue:
            return {"data": [], "count": 0}
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def queries(self, table: str, operation: Optional[str] = None) -> list[FakeQuery]:
        return [
            q for q in self.executed
            if q.table == table and (operation is None or q.operation == operation)
        ]


@pytest.fixture
def fake_db() -> FakeSupabase:
    db = FakeSupabase()
    db.sign_in()
    return db


_PATCH_TARGETS = (
    "app.auth.get_supabase_client",
    "app.routers.workouts.get_supabase_client",
    "app.routers.stats.get_supabase_client",
    "app.routers.profiles.get_supabase_client",
    "app.routers.posts.get_supabase_client",
    "app.routers.settings.get_supabase_client",
    "app.services.social.get_supabase_client",
)


@contextmanager
def api_client(db: FakeSupabase) -> Iterator[TestClient]:
    """A TestClient whose routers and services all talk to *db*."""
    patches = [patch(target, return_value=db) for target in _PATCH_TARGETS]
    patches.append(patch("app.services.social._default_service", None))
    for p in patches:
        p.start()
    try:
        from app.main import app

        yield TestClient(app)
    finally:
        for p in reversed(patches):
            p.stop()


@pytest.fixture
def client(fake_db: FakeSupabase) -> Iterator[TestClient]:
    with api_client(fake_db) as test_client:
        yield test_client
