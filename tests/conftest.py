import asyncio
import os
import sys
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cliprate.errors import BlobStoreError, RecordConflict, RecordNotFound, RecordStoreError


UNIQUE = {
    "users": [("email",)],
    "items": [("blob_path",)],
    "ratings": [("author_id", "item_id")],
    "quota_records": [("actor_id", "date")],
}
JOINS = {("items", "users"): ("author_id", "id")}


def _matches(rec, filt):
    for k, v in (filt or {}).items():
        if isinstance(v, (list, tuple, set)):
            if rec.get(k) not in v:
                return False
        elif rec.get(k) != v:
            return False
    return True


class MemoryRecordStore:
    """Record store double with the same unique keys as the SQL schema.

    ``fail[(op, table)]`` is an exception to raise, or a callable taking the
    call's filter/record and returning an exception (or None to let it pass).
    """

    def __init__(self):
        self.tables = defaultdict(dict)
        self._next_id = defaultdict(int)
        self.fail = {}
        self.calls = []

    def _check_fail(self, op, table, arg=None):
        self.calls.append((op, table, arg))
        exc = self.fail.get((op, table))
        if callable(exc) and not isinstance(exc, BaseException):
            exc = exc(arg)
        if exc is not None:
            raise exc

    def _check_unique(self, table, rec, skip_id=None):
        for cols in UNIQUE.get(table, []):
            key = tuple(rec.get(c) for c in cols)
            for other in self.tables[table].values():
                if other["id"] != skip_id and tuple(other.get(c) for c in cols) == key:
                    raise RecordConflict(f"duplicate {table} {cols}={key}")

    def add(self, table, **record):
        """Synchronous seeding helper."""
        self._next_id[table] += 1
        rec = {"id": self._next_id[table], **record}
        self.tables[table][rec["id"]] = rec
        return dict(rec)

    async def insert(self, table, record):
        self._check_fail("insert", table, record)
        rec = dict(record)
        rec.setdefault("created_at", datetime.now(timezone.utc))
        self._check_unique(table, rec)
        return self.add(table, **rec)

    async def update(self, table, record_id, patch, expected=None):
        self._check_fail("update", table, patch)
        rec = self.tables[table].get(record_id)
        if rec is None:
            raise RecordNotFound(f"{table}#{record_id}")
        if not _matches(rec, expected):
            raise RecordConflict(f"{table}#{record_id} precondition failed")
        merged = {**rec, **patch}
        self._check_unique(table, merged, skip_id=record_id)
        self.tables[table][record_id] = merged
        return dict(merged)

    async def delete(self, table, record_id):
        self._check_fail("delete", table, record_id)
        return self.tables[table].pop(record_id, None) is not None

    def _select(self, table, filt, order):
        rows = [dict(r) for r in self.tables[table].values() if _matches(r, filt)]
        for field, direction in reversed(order or []):
            rows.sort(key=lambda r: r.get(field), reverse=(direction == "desc"))
        return rows

    async def query(self, table, filter=None, order=None, limit=None):
        self._check_fail("query", table, filter)
        rows = self._select(table, filter, order)
        return rows[:limit] if limit else rows

    async def query_joined(self, table, related, fields, filter=None, order=None):
        self._check_fail("query_joined", table, filter)
        fk, pk = JOINS[(table, related)]
        out = []
        for rec in self._select(table, filter, order):
            match = [r for r in self.tables[related].values() if r.get(pk) == rec.get(fk)]
            if not match:
                continue
            rec[related] = {f: match[0].get(f) for f in fields}
            out.append(rec)
        return out


class MemoryBlobStore:
    def __init__(self):
        self.blobs = {}
        self.fail_put = None
        self.fail_delete = None
        self.put_delay = 0

    async def put(self, path, data, content_type):
        if self.put_delay:
            await asyncio.sleep(self.put_delay)
        if self.fail_put is not None:
            raise self.fail_put
        if path in self.blobs:
            raise BlobStoreError(f"blob already exists: {path}")
        self.blobs[path] = (data, content_type, datetime.now(timezone.utc))
        return path

    def public_url(self, path):
        return f"https://media.test/{path}"

    async def delete(self, paths):
        if self.fail_delete is not None:
            raise self.fail_delete
        for p in paths:
            self.blobs.pop(p, None)

    async def list(self, prefix=""):
        return [(p, meta[2]) for p, meta in self.blobs.items() if p.startswith(prefix)]


class FakeHandle:
    content_type = "audio/webm"

    def __init__(self, chunks, interval=0.001):
        self._chunks = list(chunks)
        self.interval = interval
        self.released = False
        self.release_calls = 0

    async def chunks(self):
        for chunk in self._chunks:
            if self.released:
                return
            yield chunk
            await asyncio.sleep(self.interval)
        while not self.released:
            await asyncio.sleep(self.interval)

    async def release(self):
        self.released = True
        self.release_calls += 1


class FakeDevice:
    """Microphone double; at most one handle open at a time."""

    def __init__(self, chunks=(b"ab", b"cd", b"ef"), error=None):
        self.chunks = chunks
        self.error = error
        self.handles = []
        self.constraints = None

    @property
    def open_handles(self):
        return [h for h in self.handles if not h.released]

    async def acquire(self, constraints):
        self.constraints = constraints
        if self.error is not None:
            raise self.error
        if self.open_handles:
            raise RuntimeError("device busy")
        handle = FakeHandle(self.chunks)
        self.handles.append(handle)
        return handle


class Clock:
    def __init__(self, day=date(2026, 10, 19)):
        self.day = day

    def __call__(self):
        return self.day

    def advance(self, days=1):
        self.day = self.day + timedelta(days=days)


@pytest.fixture
def records():
    return MemoryRecordStore()


@pytest.fixture
def blobs():
    return MemoryBlobStore()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def app(tmp_path):
    from cliprate import create_app
    return create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'cliprate.db'}",
        "WTF_CSRF_ENABLED": False,
        "LOCAL_STORAGE_DIR": str(tmp_path / "blobs"),
        "PUBLIC_MEDIA_URL": None,
        "STORAGE_BACKEND": "local",
    })


def signup(client, email, name="Tester", country="FR", password="correct-horse"):
    resp = client.post("/auth/signup", data={
        "email": email, "password": password, "name": name, "country": country,
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()
