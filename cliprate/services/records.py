import asyncio
import logging

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..errors import RecordConflict, RecordNotFound, RecordStoreError

logger = logging.getLogger(__name__)

# (table, related) -> (foreign key on table, key on related)
JOINS = {
    ("items", "users"): ("author_id", "id"),
    ("ratings", "users"): ("author_id", "id"),
    ("ratings", "items"): ("item_id", "id"),
}


def _model(table):
    from ..models import TABLES
    try:
        return TABLES[table]
    except KeyError:
        raise RecordStoreError(f"unknown table: {table}", table=table) from None


def _apply_filter(stmt, model, filt):
    for field, value in (filt or {}).items():
        col = getattr(model, field)
        if isinstance(value, (list, tuple, set, frozenset)):
            stmt = stmt.where(col.in_(list(value)))
        elif value is None:
            stmt = stmt.where(col.is_(None))
        else:
            stmt = stmt.where(col == value)
    return stmt


def _apply_order(stmt, model, order):
    for field, direction in (order or []):
        col = getattr(model, field)
        stmt = stmt.order_by(col.desc() if direction == "desc" else col.asc())
    return stmt


class SqlRecordStore:
    """Record store over the Flask-SQLAlchemy models.

    Each call runs in a worker thread inside its own app context, so every
    operation gets a fresh session that is committed (or rolled back) before
    the coroutine resumes.
    """

    def __init__(self, app):
        self.app = app

    def _call(self, fn, *args):
        with self.app.app_context():
            try:
                return fn(*args)
            except (RecordNotFound, RecordConflict):
                db.session.rollback()
                raise
            except IntegrityError as e:
                db.session.rollback()
                raise RecordConflict(str(e.orig) if e.orig else str(e)) from e
            except SQLAlchemyError as e:
                db.session.rollback()
                raise RecordStoreError(str(e)) from e

    async def _run(self, fn, *args):
        return await asyncio.to_thread(self._call, fn, *args)

    # --- sync bodies -------------------------------------------------------

    def _insert(self, table, record):
        obj = _model(table)(**record)
        db.session.add(obj)
        db.session.commit()
        return obj.to_dict()

    def _update(self, table, record_id, patch, expected):
        model = _model(table)
        stmt = sa.update(model).where(model.id == record_id)
        for field, value in (expected or {}).items():
            stmt = stmt.where(getattr(model, field) == value)
        res = db.session.execute(stmt.values(**patch).execution_options(synchronize_session=False))
        if res.rowcount == 0:
            exists = db.session.get(model, record_id) is not None
            if not exists:
                raise RecordNotFound(f"{table}#{record_id} not found", table=table, id=record_id)
            raise RecordConflict(f"{table}#{record_id} precondition failed", table=table, id=record_id)
        db.session.commit()
        return db.session.get(model, record_id).to_dict()

    def _delete(self, table, record_id):
        model = _model(table)
        res = db.session.execute(sa.delete(model).where(model.id == record_id))
        db.session.commit()
        return res.rowcount > 0

    def _query(self, table, filt, order, limit):
        model = _model(table)
        stmt = _apply_order(_apply_filter(sa.select(model), model, filt), model, order)
        if limit:
            stmt = stmt.limit(limit)
        return [obj.to_dict() for obj in db.session.execute(stmt).scalars()]

    def _query_joined(self, table, related, fields, filt, order):
        try:
            fk, pk = JOINS[(table, related)]
        except KeyError:
            raise RecordStoreError(f"no join defined for {table} -> {related}") from None
        model, rel = _model(table), _model(related)
        cols = [getattr(rel, f) for f in fields]
        stmt = sa.select(model, *cols).join(rel, getattr(model, fk) == getattr(rel, pk))
        stmt = _apply_order(_apply_filter(stmt, model, filt), model, order)
        out = []
        for row in db.session.execute(stmt):
            rec = row[0].to_dict()
            rec[related] = dict(zip(fields, row[1:]))
            out.append(rec)
        return out

    # --- async contract ----------------------------------------------------

    async def insert(self, table, record):
        return await self._run(self._insert, table, dict(record))

    async def update(self, table, record_id, patch, expected=None):
        return await self._run(self._update, table, record_id, dict(patch), expected)

    async def delete(self, table, record_id):
        return await self._run(self._delete, table, record_id)

    async def query(self, table, filter=None, order=None, limit=None):
        return await self._run(self._query, table, filter, order, limit)

    async def query_joined(self, table, related, fields, filter=None, order=None):
        """Inner join of ``table`` with ``related``; related columns nest under ``record[related]``."""
        return await self._run(self._query_joined, table, related, list(fields), filter, order)
