"""Typed queries over a single-field index.

An ``IndexQuery`` describes which records to read (equality terms and/or a
key range on one index) and runs them as keyset-paginated ``find`` calls
ordered by (index key, ``_id``). The continuation tokens it hands out are
opaque to callers.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, AsyncIterator, Generic, TypeVar, TYPE_CHECKING

from bson import ObjectId, json_util
from bson.errors import BSONError
from pymongo import ASCENDING, DESCENDING

from learnmongo.fields.indexed import IndexSpec
from learnmongo.lifecycle.observability import track_query
from learnmongo.utils.exceptions import InvalidCursor
from learnmongo.utils.pagination import (
    Cursor,
    Page,
    PaginationState,
    drain,
    iter_items,
    iter_pages,
)
from learnmongo.utils.types import DocumentData, FilterSpec, Transform, identity

if TYPE_CHECKING:
    from pymongo.asynchronous.client_session import AsyncClientSession

T = TypeVar("T")

_UNSET: Any = object()
_CURSOR_OPTIONS = json_util.CANONICAL_JSON_OPTIONS

DEFAULT_PAGE_SIZE = 64


def encode_cursor(index_name: str, key: Any, ref: ObjectId) -> Cursor:
    payload = json_util.dumps({"i": index_name, "k": key, "r": ref}, json_options=_CURSOR_OPTIONS)
    return Cursor(base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii"))


def decode_cursor(index_name: str, cursor: str) -> tuple[Any, ObjectId]:
    """Return the (key, ref) position a cursor of this index points at.

    Raises:
        InvalidCursor: If the token is malformed or belongs to another index
    """
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii"))
        payload = json_util.loads(raw.decode("utf-8"), json_options=_CURSOR_OPTIONS)
    except (binascii.Error, UnicodeError, ValueError, BSONError) as e:
        raise InvalidCursor(f"Malformed cursor: {cursor!r}") from e

    if not isinstance(payload, dict) or set(payload) != {"i", "k", "r"}:
        raise InvalidCursor(f"Malformed cursor: {cursor!r}")
    if payload["i"] != index_name:
        raise InvalidCursor(
            f"Cursor belongs to index '{payload['i']}', not '{index_name}'"
        )
    if not isinstance(payload["r"], ObjectId):
        raise InvalidCursor(f"Malformed cursor: {cursor!r}")
    return payload["k"], payload["r"]


class IndexQuery(Generic[T]):
    """Immutable query over one index of a Document class.

    Each builder method returns a new IndexQuery. Nothing runs until a
    terminal method is awaited.
    """

    def __init__(
        self,
        document_class: type[T],
        spec: IndexSpec,
        terms: tuple[Any, ...] | None = None,
        gte: Any = _UNSET,
        lt: Any = _UNSET,
    ) -> None:
        self._document_class = document_class
        self._spec = spec
        self._key = spec.key_field
        self._terms = terms
        self._gte = gte
        self._lt = lt

    def _clone(self, **overrides: Any) -> IndexQuery[T]:
        defaults = {
            "document_class": self._document_class,
            "spec": self._spec,
            "terms": self._terms,
            "gte": self._gte,
            "lt": self._lt,
        }
        defaults.update(overrides)
        return IndexQuery(**defaults)

    def __repr__(self) -> str:
        return (
            f"IndexQuery({self._document_class.__name__}, "
            f"index={self._spec.index_name!r}, filter={self.filter!r})"
        )

    @property
    def index_name(self) -> str:
        return self._spec.index_name

    # --- Builders ---

    def match(self, *values: Any) -> IndexQuery[T]:
        """Equality on the index key. Several values form a union."""
        if not values:
            raise ValueError("match() needs at least one value")
        return self._clone(terms=tuple(values))

    def range(self, *, gte: Any = _UNSET, lt: Any = _UNSET) -> IndexQuery[T]:
        """Restrict the index key to the half-open range [gte, lt)."""
        return self._clone(gte=gte, lt=lt)

    @property
    def filter(self) -> FilterSpec:
        """The MongoDB filter this query describes, without any cursor."""
        clauses: list[FilterSpec] = []
        if self._terms is not None:
            if len(self._terms) == 1:
                clauses.append({self._key: self._terms[0]})
            else:
                clauses.append({self._key: {"$in": list(self._terms)}})
        bounds: dict[str, Any] = {}
        if self._gte is not _UNSET:
            bounds["$gte"] = self._gte
        if self._lt is not _UNSET:
            bounds["$lt"] = self._lt
        if bounds:
            clauses.append({self._key: bounds})
        return _and(clauses)

    # --- Terminal methods ---

    async def fetch_page(
        self,
        cursor: Cursor | None = None,
        size: int = DEFAULT_PAGE_SIZE,
        *,
        before: Cursor | None = None,
        session: AsyncClientSession | None = None,
    ) -> Page[T]:
        """Run one ``find`` for the page after ``cursor`` (or before ``before``).

        Raises:
            ValueError: If size < 1 or both directions are given
            InvalidCursor: If a token cannot be decoded for this index
        """
        if size < 1:
            raise ValueError("size must be >= 1")
        if cursor is not None and before is not None:
            raise ValueError("pass either cursor or before, not both")

        backward = before is not None
        clauses = [self.filter] if self.filter else []
        if cursor is not None:
            clauses.append(self._seek(*decode_cursor(self.index_name, cursor), "$gt"))
        elif backward:
            clauses.append(self._seek(*decode_cursor(self.index_name, before), "$lt"))

        direction = DESCENDING if backward else ASCENDING
        filter = _and(clauses)
        async with track_query(
            "fetch_page",
            self._document_class._collection_name,
            self._document_class.__name__,
            filter=filter,
        ) as ctx:
            collection = self._document_class.get_collection()
            raw_docs = await (
                collection.find(filter, session=session)
                .sort([(self._key, direction), ("_id", direction)])
                .limit(size + 1)
                .to_list()
            )
            ctx["result_count"] = min(len(raw_docs), size)

        more = len(raw_docs) > size
        raw_docs = raw_docs[:size]
        if backward:
            raw_docs.reverse()
            before_token = self._cursor_at(raw_docs[0]) if more else None
            after_token = self._cursor_at(raw_docs[-1]) if raw_docs else before
        else:
            after_token = self._cursor_at(raw_docs[-1]) if more else None
            before_token = (
                self._cursor_at(raw_docs[0]) if cursor is not None and raw_docs else None
            )

        return Page(
            items=[self._document_class._from_mongo(raw) for raw in raw_docs],
            size=size,
            after=after_token,
            before=before_token,
        )

    def paginate(self, size: int = DEFAULT_PAGE_SIZE) -> AsyncIterator[Page[T]]:
        """Every page of the query, first to last."""
        return iter_pages(self.fetch_page, size)

    def iter(
        self, size: int = DEFAULT_PAGE_SIZE, transform: Transform = identity
    ) -> AsyncIterator[Any]:
        """Stream transformed items one page at a time."""
        return iter_items(self.fetch_page, size, transform)

    async def drain(
        self, size: int = DEFAULT_PAGE_SIZE, transform: Transform = identity
    ) -> PaginationState:
        """Fetch every page and collect the transformed items."""
        return await drain(self.fetch_page, size, transform)

    async def all(self, *, session: AsyncClientSession | None = None) -> list[T]:
        """All matches in index order, in a single round trip."""
        async with track_query(
            "find",
            self._document_class._collection_name,
            self._document_class.__name__,
            filter=self.filter,
        ) as ctx:
            collection = self._document_class.get_collection()
            cursor = collection.find(self.filter, session=session).sort(
                [(self._key, ASCENDING), ("_id", ASCENDING)]
            )
            results = [self._document_class._from_mongo(raw) async for raw in cursor]
            ctx["result_count"] = len(results)
        return results

    async def first(self, *, session: AsyncClientSession | None = None) -> T | None:
        page = await self.fetch_page(size=1, session=session)
        return page.items[0] if page.items else None

    async def count(self) -> int:
        async with track_query(
            "count",
            self._document_class._collection_name,
            self._document_class.__name__,
            filter=self.filter,
        ) as ctx:
            collection = self._document_class.get_collection()
            result = await collection.count_documents(self.filter)
            ctx["result_count"] = result
        return result

    # --- Internal ---

    def _cursor_at(self, raw: DocumentData) -> Cursor:
        return encode_cursor(self.index_name, raw.get(self._key), raw["_id"])

    def _seek(self, key: Any, ref: ObjectId, op: str) -> FilterSpec:
        """Filter for documents strictly past (key, ref) in sort order."""
        return {
            "$or": [
                {self._key: {op: key}},
                {self._key: key, "_id": {op: ref}},
            ]
        }


def _and(clauses: list[FilterSpec]) -> FilterSpec:
    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}
