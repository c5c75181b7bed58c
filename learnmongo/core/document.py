from __future__ import annotations

from typing import Any, ClassVar, Iterable, Optional, Self, TYPE_CHECKING

if TYPE_CHECKING:
    from learnmongo.core.query import IndexQuery

from bson import ObjectId
from pydantic import BaseModel, Field, PrivateAttr
from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import CollectionInvalid

from learnmongo.core.connection import get_database
from learnmongo.fields.base import PyObjectId
from learnmongo.fields.indexed import IndexSpec, field_index_spec
from learnmongo.lifecycle.observability import track_query
from learnmongo.utils.exceptions import DocumentNotFound
from learnmongo.utils.settings import SettingsResolver
from learnmongo.utils.types import DocumentData, DocumentRef, FilterSpec, merge_filters


def _as_object_id(ref: DocumentRef) -> ObjectId:
    return ObjectId(ref) if isinstance(ref, str) else ref


class Document(BaseModel):
    """Base class for records stored in one MongoDB collection.

    ``ref`` maps to ``_id``. Every database method takes an optional
    ``session`` so it can run inside a multi-document transaction.
    """

    model_config = {"populate_by_name": True, "arbitrary_types_allowed": True}

    ref: Optional[PyObjectId] = Field(default=None, alias="_id")

    _is_new: bool = PrivateAttr(default=True)
    _dirty_fields: set[str] = PrivateAttr(default_factory=set)
    _is_loaded: bool = PrivateAttr(default=False)

    # ClassVars, set by __pydantic_init_subclass__
    _collection_name: ClassVar[str] = ""
    _connection_alias: ClassVar[str] = "default"
    _index_specs: ClassVar[dict[str, IndexSpec]] = {}

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        """Resolve collection settings once pydantic has built the fields."""
        super().__pydantic_init_subclass__(**kwargs)
        cls._collection_name = SettingsResolver.get_collection_name(cls)
        cls._connection_alias = SettingsResolver.get_connection_alias(cls)

        specs: dict[str, IndexSpec] = {}
        for field_name, field_info in cls.model_fields.items():
            spec = field_index_spec(field_name, field_info.json_schema_extra)
            if spec is not None:
                specs[spec.index_name] = spec
        for spec in SettingsResolver.get_indexes(cls):
            if isinstance(spec, dict):
                spec = IndexSpec(**spec)
            specs[spec.index_name] = spec
        cls._index_specs = specs

    def __setattr__(self, name: str, value: Any) -> None:
        # Track dirty fields after the document is loaded from DB
        if (
            name != "ref"
            and getattr(self, "_is_loaded", False)
            and name in self.__class__.model_fields
        ):
            self._dirty_fields.add(name)
        super().__setattr__(name, value)

    # --- Dirty tracking ---

    @property
    def is_dirty(self) -> bool:
        return len(self._dirty_fields) > 0

    @property
    def dirty_fields(self) -> set[str]:
        return set(self._dirty_fields)

    def _mark_loaded(self) -> None:
        """Mark document as persisted, clearing dirty state."""
        self._dirty_fields = set()
        self._is_loaded = True
        self._is_new = False

    def _get_update_doc(self) -> DocumentData:
        """Build a $set update document from dirty fields only."""
        if not self._dirty_fields:
            return {}
        data = self._to_mongo()
        changes = {}
        for field_name in self._dirty_fields:
            field_info = self.__class__.model_fields[field_name]
            mongo_key = field_info.alias or field_name
            changes[mongo_key] = data.get(mongo_key)
        return {"$set": changes}

    # --- Serialization ---

    def _to_mongo(self) -> DocumentData:
        """Convert to a MongoDB dict, keeping native BSON types."""
        data = self.model_dump(by_alias=True, mode="python")
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def _from_mongo(cls, data: DocumentData) -> Self:
        doc = cls.model_validate(data)
        doc._mark_loaded()
        return doc

    def to_data(self) -> DocumentData:
        """The user fields of this record, without its ref."""
        data = self.model_dump(mode="python")
        data.pop("ref", None)
        return data

    # --- Collection access ---

    @classmethod
    def get_collection(cls) -> AsyncCollection:
        """Get the MongoDB collection for this document class."""
        db = get_database(cls._connection_alias)
        return db[cls._collection_name]

    @classmethod
    async def create_collection(cls) -> DocumentData:
        """Create the collection explicitly and describe it.

        Raises:
            CollectionInvalid: If the collection already exists
        """
        db = get_database(cls._connection_alias)
        async with track_query("create_collection", cls._collection_name, cls.__name__):
            await db.create_collection(cls._collection_name)
        return {"name": cls._collection_name, "database": db.name}

    @classmethod
    async def ensure_collection(cls) -> bool:
        """Create the collection unless it exists. Returns True if created."""
        try:
            await cls.create_collection()
        except CollectionInvalid:
            return False
        return True

    # --- Indexing ---

    @classmethod
    def index_specs(cls) -> dict[str, IndexSpec]:
        return dict(cls._index_specs)

    @classmethod
    async def ensure_indexes(cls) -> list[str]:
        """Create every index declared on this class. Returns index names.

        Indexes come from ``Indexed()`` fields and ``Settings.indexes``.
        """
        return [await cls.ensure_index(name) for name in cls._index_specs]

    @classmethod
    async def ensure_index(cls, name: str) -> str:
        """Create one declared index by name.

        Raises:
            KeyError: If no such index is declared on the class
        """
        try:
            spec = cls._index_specs[name]
        except KeyError:
            raise KeyError(
                f"{cls.__name__} declares no index named '{name}'"
            ) from None
        keys, kwargs = spec.to_pymongo()
        async with track_query("create_index", cls._collection_name, cls.__name__):
            return await cls.get_collection().create_index(keys, **kwargs)

    @classmethod
    def index(cls, name: str) -> "IndexQuery[Self]":
        """Start a query over the named index.

        Raises:
            KeyError: If no such index is declared on the class
        """
        from learnmongo.core.query import IndexQuery

        try:
            spec = cls._index_specs[name]
        except KeyError:
            raise KeyError(
                f"{cls.__name__} declares no index named '{name}'"
            ) from None
        return IndexQuery(cls, spec)

    # --- Class-level CRUD ---

    @classmethod
    async def create(
        cls, *, session: AsyncClientSession | None = None, **kwargs: Any
    ) -> Self:
        """Create and insert a new document."""
        doc = cls(**kwargs)
        await doc.insert(session=session)
        return doc

    @classmethod
    async def insert_many(
        cls, docs: Iterable[Self], *, session: AsyncClientSession | None = None
    ) -> list[Self]:
        """Insert several documents in one round trip, in order."""
        docs = list(docs)
        if not docs:
            return docs
        async with track_query("insert_many", cls._collection_name, cls.__name__) as ctx:
            collection = cls.get_collection()
            result = await collection.insert_many(
                [doc._to_mongo() for doc in docs], session=session
            )
            for doc, inserted_id in zip(docs, result.inserted_ids):
                doc.ref = inserted_id
                doc._mark_loaded()
            ctx["result_count"] = len(result.inserted_ids)
        return docs

    @classmethod
    async def get(
        cls, ref: DocumentRef, *, session: AsyncClientSession | None = None
    ) -> Self:
        """Find a document by its ref. Raises DocumentNotFound if missing."""
        ref = _as_object_id(ref)
        async with track_query("get", cls._collection_name, cls.__name__, filter={"_id": ref}):
            collection = cls.get_collection()
            data = await collection.find_one({"_id": ref}, session=session)
        if data is None:
            raise DocumentNotFound(f"{cls.__name__} with ref '{ref}' not found")
        return cls._from_mongo(data)

    @classmethod
    async def get_many(
        cls, refs: Iterable[DocumentRef], *, session: AsyncClientSession | None = None
    ) -> list[Self]:
        """Fetch documents by ref, returned in the order of ``refs``.

        Raises:
            DocumentNotFound: If any ref has no document
        """
        refs = [_as_object_id(ref) for ref in refs]
        filter = {"_id": {"$in": refs}}
        async with track_query("get_many", cls._collection_name, cls.__name__, filter=filter) as ctx:
            collection = cls.get_collection()
            by_ref = {
                raw["_id"]: raw async for raw in collection.find(filter, session=session)
            }
            ctx["result_count"] = len(by_ref)
        missing = [ref for ref in refs if ref not in by_ref]
        if missing:
            raise DocumentNotFound(
                f"{cls.__name__} refs not found: {', '.join(map(str, missing))}"
            )
        return [cls._from_mongo(by_ref[ref]) for ref in refs]

    @classmethod
    async def find_one(
        cls,
        filter: FilterSpec | None = None,
        *,
        session: AsyncClientSession | None = None,
        **kwargs: Any,
    ) -> Self | None:
        """Find a single document matching the filter."""
        filter = merge_filters(filter, **kwargs)
        async with track_query("find_one", cls._collection_name, cls.__name__, filter=filter):
            collection = cls.get_collection()
            data = await collection.find_one(filter, session=session)
        if data is None:
            return None
        return cls._from_mongo(data)

    @classmethod
    async def find(
        cls,
        filter: FilterSpec | None = None,
        *,
        session: AsyncClientSession | None = None,
        **kwargs: Any,
    ) -> list[Self]:
        """All documents matching the filter, in natural order."""
        filter = merge_filters(filter, **kwargs)
        async with track_query("find", cls._collection_name, cls.__name__, filter=filter) as ctx:
            collection = cls.get_collection()
            results = [
                cls._from_mongo(raw)
                async for raw in collection.find(filter, session=session)
            ]
            ctx["result_count"] = len(results)
        return results

    # --- Instance-level CRUD ---

    async def insert(self, *, session: AsyncClientSession | None = None) -> None:
        """Insert this document into the database."""
        async with track_query("insert", self._collection_name, self.__class__.__name__):
            collection = self.get_collection()
            result = await collection.insert_one(self._to_mongo(), session=session)
            self.ref = result.inserted_id
            self._mark_loaded()

    async def save(self, *, session: AsyncClientSession | None = None) -> None:
        """Insert if new, otherwise write the dirty fields."""
        if self._is_new:
            await self.insert(session=session)
            return

        if not self.is_dirty:
            return

        update_doc = self._get_update_doc()
        async with track_query(
            "save", self._collection_name, self.__class__.__name__, update=update_doc
        ):
            collection = self.get_collection()
            await collection.update_one({"_id": self.ref}, update_doc, session=session)
            self._dirty_fields = set()

    async def update(
        self, *, session: AsyncClientSession | None = None, **kwargs: Any
    ) -> None:
        """Validate and write the given fields, then apply them locally.

        Raises:
            ValueError: If a field doesn't exist or a value is invalid
        """
        from pydantic import ValidationError

        for key in kwargs:
            if key not in self.__class__.model_fields or key == "ref":
                raise ValueError(f"Unknown field: {key}")

        try:
            current_data = self.model_dump(mode="python")
            current_data.update(kwargs)
            validated = self.__class__.model_validate(current_data)
        except ValidationError as e:
            raise ValueError(f"Invalid update values: {e}") from e

        changes = {key: getattr(validated, key) for key in kwargs}
        fields = self.__class__.model_fields
        update_doc = {
            "$set": {(fields[key].alias or key): value for key, value in changes.items()}
        }
        async with track_query(
            "update", self._collection_name, self.__class__.__name__, update=update_doc
        ):
            collection = self.get_collection()
            result = await collection.update_one(
                {"_id": self.ref}, update_doc, session=session
            )
        if result.matched_count == 0:
            raise DocumentNotFound(
                f"{self.__class__.__name__} with ref '{self.ref}' not found"
            )
        for key, value in changes.items():
            object.__setattr__(self, key, value)
        self._dirty_fields -= set(changes)

    async def delete(self, *, session: AsyncClientSession | None = None) -> None:
        """Delete this document from the database."""
        async with track_query("delete", self._collection_name, self.__class__.__name__) as ctx:
            collection = self.get_collection()
            result = await collection.delete_one({"_id": self.ref}, session=session)
            ctx["result_count"] = result.deleted_count

    async def reload(self, *, session: AsyncClientSession | None = None) -> None:
        """Re-fetch this document from the database."""
        async with track_query("reload", self._collection_name, self.__class__.__name__):
            collection = self.get_collection()
            data = await collection.find_one({"_id": self.ref}, session=session)
        if data is None:
            raise DocumentNotFound(
                f"{self.__class__.__name__} with ref '{self.ref}' not found"
            )
        refreshed = self.__class__.model_validate(data)
        for field_name in self.__class__.model_fields:
            object.__setattr__(self, field_name, getattr(refreshed, field_name))
        self._mark_loaded()
