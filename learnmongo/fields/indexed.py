from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import Field as PydanticField
from pymongo import ASCENDING


@dataclass(frozen=True)
class IndexSpec:
    """Specification for a MongoDB index.

    ``fields`` is either a single field name or a list of (field, direction)
    pairs. Only single-field indexes can back an ``IndexQuery``.
    """

    fields: str | list[tuple[str, int]]
    unique: bool = False
    sparse: bool = False
    name: str | None = None

    @property
    def keys(self) -> list[tuple[str, int]]:
        if isinstance(self.fields, str):
            return [(self.fields, ASCENDING)]
        return list(self.fields)

    @property
    def key_field(self) -> str:
        """The field an IndexQuery filters and orders on.

        Either the only field of the index, or the first one when the index
        is (field, _id), which matches the keyset sort order exactly.
        """
        keys = self.keys
        if len(keys) == 1 or (len(keys) == 2 and keys[1][0] == "_id"):
            return keys[0][0]
        raise ValueError(
            f"Index '{self.index_name}' on {[field for field, _ in keys]} "
            "cannot back a query; use a single field, optionally followed by _id"
        )

    @property
    def index_name(self) -> str:
        if self.name:
            return self.name
        return "_".join(f"{field}_{direction}" for field, direction in self.keys)

    def to_pymongo(self) -> tuple[list[tuple[str, int]], dict[str, Any]]:
        """Convert to pymongo create_index arguments (keys, kwargs)."""
        kwargs: dict[str, Any] = {"name": self.index_name}
        if self.unique:
            kwargs["unique"] = True
        if self.sparse:
            kwargs["sparse"] = True
        return self.keys, kwargs


def Indexed(
    default: Any = ...,
    *,
    unique: bool = False,
    sparse: bool = False,
    name: str | None = None,
    **kwargs: Any,
) -> Any:
    """Field wrapper that marks a field for automatic index creation.

    Usage: id: int = Indexed(unique=True, name="customer_by_id")
    """
    index_meta = {
        "_learnmongo_index": True,
        "_index_unique": unique,
        "_index_sparse": sparse,
        "_index_name": name,
    }

    field_kwargs: dict[str, Any] = {**kwargs}
    if default is not ...:
        field_kwargs["default"] = default

    field_kwargs["json_schema_extra"] = index_meta
    return PydanticField(**field_kwargs)


def field_index_spec(field_name: str, extra: Any) -> IndexSpec | None:
    """Build the IndexSpec declared by an ``Indexed()`` field, if any."""
    if not (isinstance(extra, dict) and extra.get("_learnmongo_index")):
        return None
    return IndexSpec(
        fields=field_name,
        unique=bool(extra.get("_index_unique")),
        sparse=bool(extra.get("_index_sparse")),
        name=extra.get("_index_name"),
    )
