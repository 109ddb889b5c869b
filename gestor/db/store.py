"""Collection-per-entity document store.

A thin create/read/update/delete contract over the ``documents`` table.
Collections are addressed by path; user data lives under
``users/<uid>/<kind>`` so writers only contend within one user's partition.
Field filters, ordering and limits compile to JSON element expressions and
run in the database, on SQLite and PostgreSQL alike.
"""

import operator
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import ColumnElement, case, cast, delete, func, null, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gestor.db.models import Document


Filter = tuple[str, str, Any]

_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

# JSON type names each dialect reports for a filter value's Python type
_JSON_TYPES: dict[str, dict[type, tuple[str, ...]]] = {
    "sqlite": {
        str: ("text",),
        bool: ("true", "false"),
        float: ("integer", "real"),
    },
    "postgresql": {
        str: ("string",),
        bool: ("boolean",),
        float: ("number",),
    },
}

USERS = "users"


def utc_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with fixed precision (sortable as text)."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def user_collection(uid: str, kind: str) -> str:
    """Path of a per-user sub-collection."""
    return f"{USERS}/{uid}/{kind}"


def _new_id() -> str:
    return uuid4().hex[:20]


def _strip_id(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k != "id"}


def _value_kind(value: Any) -> type:
    if isinstance(value, bool):
        return bool
    if isinstance(value, (int, float)):
        return float
    if isinstance(value, str):
        return str
    raise ValueError(f"Unsupported filter value: {value!r}")


def _json_type(dialect: str, field: str) -> ColumnElement[Any]:
    if dialect == "sqlite":
        return func.json_type(Document.data, f'$."{field}"')
    return func.json_typeof(Document.data[field])


def _filter_clause(dialect: str, field: str, op: str, value: Any) -> ColumnElement[bool]:
    """Compare one field, or NULL (no match) when it is missing or of another type."""
    kind = _value_kind(value)
    element = Document.data[field]
    accessor = {
        str: element.as_string,
        bool: element.as_boolean,
        float: element.as_float,
    }[kind]()
    guarded = case((_json_type(dialect, field).in_(_JSON_TYPES[dialect][kind]), accessor))
    return _OPERATORS[op](guarded, value)


def _sort_key(dialect: str, field: str) -> ColumnElement[Any]:
    if dialect == "sqlite":
        return func.json_extract(Document.data, f'$."{field}"')
    return case(
        (_json_type(dialect, field) == "null", null()),
        else_=cast(Document.data[field], JSONB),
    )


class DocumentStore:
    """Async document store backed by SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        """Insert a document with a generated id."""
        doc_id = _new_id()
        async with self._session_factory() as session:
            session.add(Document(collection=collection, doc_id=doc_id, data=_strip_id(data)))
            await session.commit()
        return doc_id

    async def add_many(self, collection: str, items: Iterable[Mapping[str, Any]]) -> list[str]:
        """Insert several documents in a single transaction."""
        docs = [
            Document(collection=collection, doc_id=_new_id(), data=_strip_id(item))
            for item in items
        ]
        if not docs:
            return []
        async with self._session_factory() as session:
            session.add_all(docs)
            await session.commit()
        return [doc.doc_id for doc in docs]

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        """Create or replace a document; ``merge`` keeps existing fields."""
        async with self._session_factory() as session:
            doc = await session.get(Document, (collection, doc_id))
            if doc is None:
                session.add(Document(collection=collection, doc_id=doc_id, data=_strip_id(data)))
            elif merge:
                doc.data = {**doc.data, **_strip_id(data)}
            else:
                doc.data = _strip_id(data)
            await session.commit()

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        async with self._session_factory() as session:
            doc = await session.get(Document, (collection, doc_id))
            if doc is None:
                return None
            return {**doc.data, "id": doc.doc_id}

    async def update(self, collection: str, doc_id: str, changes: Mapping[str, Any]) -> bool:
        """Merge ``changes`` into an existing document.

        Returns:
            False when the document does not exist
        """
        async with self._session_factory() as session:
            doc = await session.get(Document, (collection, doc_id))
            if doc is None:
                return False
            doc.data = {**doc.data, **_strip_id(changes)}
            await session.commit()
        return True

    async def delete(self, collection: str, doc_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(Document).where(
                    Document.collection == collection,
                    Document.doc_id == doc_id,
                )
            )
            await session.commit()
        return bool(result.rowcount)

    async def delete_many(self, collection: str, doc_ids: Sequence[str]) -> int:
        if not doc_ids:
            return 0
        async with self._session_factory() as session:
            result = await session.execute(
                delete(Document).where(
                    Document.collection == collection,
                    Document.doc_id.in_(list(doc_ids)),
                )
            )
            await session.commit()
        return int(result.rowcount or 0)

    async def query(
        self,
        collection: str,
        *,
        where: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        start_after: str | None = None,
    ) -> list[dict[str, Any]]:
        """List documents of a collection.

        Args:
            where: ``(field, op, value)`` filters, all of which must match;
                a missing, null or differently typed field never matches
            order_by: document field to sort on, missing values last
                (insertion order otherwise)
            start_after: id of the document after which the page starts
        """
        async with self._session_factory() as session:
            dialect = session.get_bind().dialect.name
            stmt = select(Document).where(
                Document.collection == collection,
                *self._filters(dialect, where),
            )

            order: list[Any] = []
            if order_by:
                key = _sort_key(dialect, order_by)
                order += [key.is_(None), key.desc() if descending else key.asc()]
                order.append(Document.created_at)
            elif descending:
                order.append(Document.created_at.desc())
            else:
                order.append(Document.created_at)
            stmt = stmt.order_by(*order)

            # A cursor page is cut from the ordered ids, so only plain
            # pages can carry the limit into the statement
            if limit is not None and not start_after:
                stmt = stmt.limit(limit)

            result = await session.execute(stmt)
            docs = [{**doc.data, "id": doc.doc_id} for doc in result.scalars()]

        if start_after:
            ids = [d["id"] for d in docs]
            if start_after in ids:
                docs = docs[ids.index(start_after) + 1:]
            if limit is not None:
                docs = docs[:limit]
        return docs

    async def count(self, collection: str, *, where: Sequence[Filter] = ()) -> int:
        async with self._session_factory() as session:
            dialect = session.get_bind().dialect.name
            result = await session.execute(
                select(func.count())
                .select_from(Document)
                .where(
                    Document.collection == collection,
                    *self._filters(dialect, where),
                )
            )
            return int(result.scalar_one())

    @staticmethod
    def _filters(dialect: str, where: Sequence[Filter]) -> list[ColumnElement[bool]]:
        for _, op, _ in where:
            if op not in _OPERATORS:
                raise ValueError(f"Unsupported filter operator: {op}")
        return [_filter_clause(dialect, field, op, value) for field, op, value in where]
